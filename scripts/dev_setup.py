"""Write the local .env used by Taleweaver and create the session database."""
from __future__ import annotations

import argparse
import shutil
import sys
from pathlib import Path
from typing import Dict

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from taleweaver import create_app  # noqa: E402
from taleweaver.db_utils import ensure_database_schema  # noqa: E402

DEFAULT_ENV_PATH = REPO_ROOT / ".env"
BACKUP_SUFFIX = ".bak"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Create or update the .env file read by Taleweaver and make sure the session "
            "database exists."
        )
    )
    parser.add_argument(
        "--flask-app",
        default="wsgi.py",
        help="Entry point used by Flask (default: wsgi.py)",
    )
    parser.add_argument(
        "--secret-key",
        help="Secret key for signing reader sessions. Keeps the current value when omitted.",
    )
    parser.add_argument(
        "--database-url",
        help="Override DATABASE_URL (defaults to instance/taleweaver.db).",
    )
    backend = parser.add_mutually_exclusive_group()
    backend.add_argument(
        "--model-path",
        help="Directory of a local Hugging Face model used to write stories.",
    )
    backend.add_argument(
        "--openai-model",
        help="OpenAI chat model used to write stories (requires --openai-api-key).",
    )
    parser.add_argument(
        "--openai-api-key",
        help="API key for the OpenAI backend.",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        help="Number of pages written per batch before pausing.",
    )
    parser.add_argument(
        "--batch-delay",
        type=float,
        help="Seconds to wait between page batches.",
    )
    parser.add_argument(
        "--env-path",
        type=Path,
        default=DEFAULT_ENV_PATH,
        help="Path to the .env file that should be created/updated.",
    )
    parser.add_argument(
        "--skip-db",
        action="store_true",
        help="Only update the .env file without touching the database.",
    )
    args = parser.parse_args()
    if args.openai_model and not args.openai_api_key:
        parser.error("--openai-model requires --openai-api-key")
    return args


def read_env(path: Path) -> Dict[str, str]:
    if not path.exists():
        return {}
    data: Dict[str, str] = {}
    for line in path.read_text().splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, _, value = stripped.partition("=")
        data[key.strip()] = value.strip()
    return data


def write_env(path: Path, values: Dict[str, str]) -> None:
    if path.exists():
        backup_path = path.with_suffix(path.suffix + BACKUP_SUFFIX)
        shutil.copy(path, backup_path)
        print(f"Existing {path.name} backed up to {backup_path.name}.")
    path.write_text("".join(f"{key}={value}\n" for key, value in values.items()))
    print(f"Settings written to {path}.")


def collect_updates(args: argparse.Namespace) -> Dict[str, str]:
    updates = {"FLASK_APP": args.flask_app}
    optional = {
        "SECRET_KEY": args.secret_key,
        "DATABASE_URL": args.database_url,
        "TEXT_GENERATOR_MODEL_PATH": args.model_path,
        "OPENAI_MODEL": args.openai_model,
        "OPENAI_API_KEY": args.openai_api_key,
        "NODE_CONTENT_BATCH_SIZE": args.batch_size,
        "NODE_CONTENT_BATCH_DELAY": args.batch_delay,
    }
    updates.update({key: str(value) for key, value in optional.items() if value is not None})
    return updates


def update_env_file(args: argparse.Namespace) -> Dict[str, str]:
    env_data = read_env(args.env_path)
    env_data.update(collect_updates(args))
    if args.model_path:
        env_data.pop("OPENAI_MODEL", None)
    write_env(args.env_path, env_data)
    return env_data


def initialize_database() -> None:
    app = create_app()
    with app.app_context():
        ensure_database_schema()
        uri = app.config["SQLALCHEMY_DATABASE_URI"]
    print(f"Session database ready ({uri}).")


def main() -> None:
    args = parse_args()
    env_values = update_env_file(args)

    if not args.skip_db:
        initialize_database()
    else:
        print("Database initialization skipped.")

    print("\nSetup complete! Summary:")
    for key in sorted(env_values):
        value = "********" if key in {"SECRET_KEY", "OPENAI_API_KEY"} else env_values[key]
        print(f"  {key}={value}")


if __name__ == "__main__":
    main()
