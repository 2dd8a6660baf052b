"""Entry point for ``python -m devimage``."""

from devimage.cli.main import main


if __name__ == "__main__":
    main()
