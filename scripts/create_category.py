"""Seed post categories.

Usage:
  python scripts/create_category.py Tech Travel "Food & Drink"
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from blog_platform.config import load_config
from blog_platform.db import connect, init_db
from blog_platform.posts.crud import insert_category


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("names", nargs="+")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    with connect(cfg.DB_DSN) as conn:
        for name in args.names:
            cat = insert_category(conn, name.strip())
            print(f"Created category: {cat}")


if __name__ == "__main__":
    main()
