"""Allow running synchrotron with ``python -m synchrotron``."""

from synchrotron.cli import main

if __name__ == "__main__":
    main()
