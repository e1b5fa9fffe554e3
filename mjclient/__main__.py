"""
Entry point for running mjclient as a module: python -m mjclient
"""

from mjclient.cli.commands import app

if __name__ == "__main__":
    app()
