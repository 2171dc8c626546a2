"""Entry point for 'python -m authforge'."""

from authforge.cli import main

if __name__ == "__main__":
    main()
