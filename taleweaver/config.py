import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")


def _default_sqlite_uri() -> str:
    instance_path = BASE_DIR / "instance"
    instance_path.mkdir(exist_ok=True)
    return f"sqlite:///{instance_path / 'taleweaver.db'}"


class Config:
    """Base configuration shared across environments."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", _default_sqlite_uri())
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_TIME_LIMIT = None

    TEXT_GENERATOR_MODEL_PATH = os.environ.get("TEXT_GENERATOR_MODEL_PATH")
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
    OPENAI_MODEL = os.environ.get("OPENAI_MODEL")

    # Per-node content is generated one request at a time; after every batch
    # the service pauses to stay under the upstream rate limit.
    NODE_CONTENT_BATCH_SIZE = int(os.environ.get("NODE_CONTENT_BATCH_SIZE", "3"))
    NODE_CONTENT_BATCH_DELAY = float(os.environ.get("NODE_CONTENT_BATCH_DELAY", "1.5"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    TEXT_GENERATOR_MODEL_PATH = None
    OPENAI_API_KEY = None
    OPENAI_MODEL = None
    NODE_CONTENT_BATCH_DELAY = 0.0
