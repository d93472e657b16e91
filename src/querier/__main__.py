"""
Entry point for: python3 -m src.querier

Discovers the hub, pairs if needed and starts logging sensor readings.
"""

from .supervisor import main

if __name__ == "__main__":
    main()
