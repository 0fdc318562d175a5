"""CLI tool for admin operations.

Usage:
    python -m journal.cli create-admin
    python -m journal.cli recompute-streaks
"""

import sys
import getpass

from sqlmodel import Session, select

from journal.database import engine, create_db_and_tables
from journal.models.user import User
from journal.services.auth import hash_password, generate_totp_secret, get_totp_uri


def create_admin():
    """Create an admin user (may broadcast signals) with TOTP setup."""
    create_db_and_tables()

    username = input("Username: ").strip()
    if not username:
        print("Username cannot be empty.")
        sys.exit(1)

    with Session(engine) as session:
        existing = session.exec(select(User).where(User.username == username)).first()
        if existing:
            print(f"User '{username}' already exists.")
            sys.exit(1)

    password = getpass.getpass("Password: ")
    password_confirm = getpass.getpass("Confirm password: ")
    if password != password_confirm:
        print("Passwords do not match.")
        sys.exit(1)

    totp_secret = generate_totp_secret()
    totp_uri = get_totp_uri(totp_secret, username)

    user = User(
        username=username,
        hashed_password=hash_password(password),
        totp_secret=totp_secret,
        is_admin=True,
    )

    with Session(engine) as session:
        session.add(user)
        session.commit()

    print(f"\nAdmin user '{username}' created successfully.")
    print(f"\nTOTP Secret: {totp_secret}")
    print(f"TOTP URI: {totp_uri}")
    print("\nScan the QR code below with your authenticator app:")

    try:
        import qrcode
        qr = qrcode.QRCode(box_size=1, border=1)
        qr.add_data(totp_uri)
        qr.make(fit=True)
        qr.print_ascii(invert=True)
    except ImportError:
        print("(Install qrcode[pil] to display QR code in terminal)")


def recompute_streaks():
    """Rebuild every user's streak record from their full trade history."""
    from journal.engine.trade_cycle import refresh_streak
    from journal.store import JournalStore

    create_db_and_tables()
    with Session(engine) as session:
        store = JournalStore(session)
        user_ids = store.list_user_ids()
        for user_id in user_ids:
            summary, record = refresh_streak(store, user_id, allow_decrease=True)
            print(
                f"user {user_id}: current {summary.current_trades} trades / "
                f"{summary.current_days} days, best {record.best_unbroken_trades} / "
                f"{record.best_unbroken_days}"
            )
    print(f"\nRecomputed {len(user_ids)} streak records.")


COMMANDS = {
    "create-admin": create_admin,
    "recompute-streaks": recompute_streaks,
}


def main():
    if len(sys.argv) < 2:
        print("Usage: python -m journal.cli <command>")
        print(f"Commands: {', '.join(COMMANDS)}")
        sys.exit(1)

    command = COMMANDS.get(sys.argv[1])
    if command is None:
        print(f"Unknown command: {sys.argv[1]}")
        sys.exit(1)
    command()


if __name__ == "__main__":
    main()
