"""Module execution entrypoint for ``python -m rbac_cli``."""

from .main import app

if __name__ == "__main__":
    app()
