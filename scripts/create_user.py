"""Register a user directly against the configured DB.

Usage:
  python scripts/create_user.py --name Alice --email alice@example.com --password '...'

NOTE: This is intended for local/dev.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from blog_platform.auth import IdentityService, JWTSessionTokens
from blog_platform.config import load_config
from blog_platform.db import init_db


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--name", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    tokens = JWTSessionTokens(secret=cfg.AUTH_JWT_SECRET, expires_minutes=cfg.AUTH_TOKEN_EXPIRE_MINUTES)
    result = IdentityService(db_dsn=cfg.DB_DSN, tokens=tokens).register(
        name=args.name,
        email=args.email,
        password=args.password,
    )
    if not result.success:
        print(f"Failed: {result.message}")
        raise SystemExit(1)

    print("Created user:")
    print(result.data)


if __name__ == "__main__":
    main()
