"""aya - Entry Point.

Usage:
    python main.py webhook send "boom" --url https://discord.com/api/webhooks/...
    python main.py webhook config
"""

from src.cli import create_app

app = create_app()


if __name__ == "__main__":
    app()
