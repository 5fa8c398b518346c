"""Run with: python -m catscii"""

from catscii.api import main

if __name__ == "__main__":
    main()
