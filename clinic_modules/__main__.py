import sys

from clinic_modules.cli import main

if __name__ == "__main__":
    sys.exit(main())
