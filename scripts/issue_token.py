"""Print a bearer token for an existing user (logins live outside this service)."""
import argparse
import pathlib
import sys
from datetime import timedelta

from dotenv import load_dotenv

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Plain os.getenv lookups (DISABLE_DEMO_SEED, APP_ENV) read .env as well.
load_dotenv(ROOT / ".env")

import database  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.models import User  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Issue an access token for a user")
    parser.add_argument("email", help="E-mail of an existing admin or specialist")
    parser.add_argument("--hours", type=int, default=24, help="Token lifetime in hours")
    args = parser.parse_args()

    with database.SessionLocal() as db:
        user = db.query(User).filter(User.email == args.email).first()
        if user is None:
            print(f"No user with e-mail {args.email}", file=sys.stderr)
            return 1
        token = create_access_token(user.id, user.role, expires_delta=timedelta(hours=args.hours))

    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
