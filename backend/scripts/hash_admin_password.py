"""Generate the bcrypt hash of the admin password.

Prompts for the password twice (input is not echoed) and prints the hash
to put in ADMIN_PASSWORD_HASH.

Usage:
    cd backend && python scripts/hash_admin_password.py
    cd backend && python scripts/hash_admin_password.py --rounds 13
"""

import argparse
import getpass
import sys

import bcrypt

_MIN_PASSWORD_LENGTH = 12
# bcrypt ignores everything past 72 bytes
_MAX_PASSWORD_BYTES = 72
_DEFAULT_ROUNDS = 12


def hash_password(password: str, rounds: int = _DEFAULT_ROUNDS) -> str:
    """Hash a password with a fresh salt.

    Args:
        password: Plain-text password.
        rounds: bcrypt cost factor.

    Returns:
        bcrypt hash as text.

    Raises:
        ValueError: If the password is too short or too long for bcrypt.
    """
    if len(password) < _MIN_PASSWORD_LENGTH:
        msg = f"Password must be at least {_MIN_PASSWORD_LENGTH} characters"
        raise ValueError(msg)
    encoded = password.encode()
    if len(encoded) > _MAX_PASSWORD_BYTES:
        msg = f"Password must be at most {_MAX_PASSWORD_BYTES} bytes"
        raise ValueError(msg)
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode()


def main() -> None:
    """CLI entry point: prompt for the password and print its hash."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--rounds",
        type=int,
        default=_DEFAULT_ROUNDS,
        help=f"bcrypt cost factor (default {_DEFAULT_ROUNDS})",
    )
    args = parser.parse_args()

    password = getpass.getpass("Admin password: ")
    confirmation = getpass.getpass("Repeat password: ")
    if password != confirmation:
        print("Passwords do not match", file=sys.stderr)
        sys.exit(1)

    try:
        hashed = hash_password(password, args.rounds)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    print(f"ADMIN_PASSWORD_HASH={hashed}")


if __name__ == "__main__":
    main()
