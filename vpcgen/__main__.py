"""Entry point for ``python -m vpcgen``."""

from vpcgen.cli import main

if __name__ == "__main__":
    main()
