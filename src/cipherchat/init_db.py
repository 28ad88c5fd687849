# src/cipherchat/init_db.py
"""Create the relay's tables without running migrations."""

from cipherchat.db.session import create_tables


def init_db() -> None:
    """Initialize the database by creating all tables."""
    create_tables()


if __name__ == "__main__":
    init_db()
    print("Database initialized.")
