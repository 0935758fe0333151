"""
Entry point for: python3 -m src.player

Launches the display player (headless renderer).
"""

from .player import main

if __name__ == "__main__":
    main()
