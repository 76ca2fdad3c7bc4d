# zos_connector/__main__.py
"""Entry point for `python -m zos_connector`."""

from zos_connector.cli import app

if __name__ == "__main__":
    app()
