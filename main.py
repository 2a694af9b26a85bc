"""
Stock Screener P&L - Main Entry Point
=====================================
Run this file to start the terminal P&L tracker.
Usage: python main.py
"""

from screener.cli import CLI
from screener.config import configure_logging


def main():
    configure_logging()
    cli = CLI()
    cli.run()


if __name__ == "__main__":
    main()
