# main.py
"""
QuickEvent launcher. Same as `python -m quickevent` or the `quickevent` script.

- Put QUICKEVENT_* overrides in .env (see README); the OpenAI key lives in the Keychain.
"""
from quickevent.app import main

if __name__ == "__main__":
    main()
