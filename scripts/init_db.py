import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from blog_platform.config import load_config
from blog_platform.db import init_db
from blog_platform.posts import ImageIntake


def main() -> None:
    cfg = load_config()
    init_db(cfg.DB_DSN)
    ImageIntake(
        upload_dir=cfg.UPLOAD_DIR,
        max_bytes=cfg.UPLOAD_MAX_BYTES,
        allowed_types=cfg.UPLOAD_ALLOWED_TYPES,
    ).ensure_dir()

    print(f"DB initialized: {cfg.DB_DSN}")
    print(f"Upload dir: {cfg.UPLOAD_DIR}")


if __name__ == "__main__":
    main()
