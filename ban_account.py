import argparse

from http_main import DB_BACKEND, DB_PATH, postgres_params
from infrastructure.db.backends import build_repositories


def main() -> None:
    """
    Ban or unban an account.

    Banned accounts cannot log in or submit scores, and their rows are
    hidden from every leaderboard until the ban is lifted.
    """

    parser = argparse.ArgumentParser(description=main.__doc__.strip().splitlines()[0])
    parser.add_argument("account_id")
    parser.add_argument("--unban", action="store_true", help="lift an existing ban")
    args = parser.parse_args()

    repos = build_repositories(DB_BACKEND, db_path=DB_PATH, db_params=postgres_params())
    banned = not args.unban
    if not repos.accounts.set_banned(args.account_id, banned):
        parser.exit(1, f"No account with ID {args.account_id!r}.\n")

    state = "Banned" if banned else "Unbanned"
    print(f"{state} account {args.account_id}.")


if __name__ == "__main__":
    main()
