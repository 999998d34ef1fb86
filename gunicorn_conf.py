import argparse
import os

from dotenv import load_dotenv

# In container environments APP_ENV is set and the container env wins
app_env = os.environ.get("APP_ENV")

if not app_env:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "--env",
        type=str,
        choices=["dev", "docker", "prod", "local", "rc"],
        default="local",
    )

    # Parse only known args to avoid conflicts with gunicorn's own arguments
    args, _ = parser.parse_known_args()

    env_file = f".{args.env}.env"
    if os.path.exists(env_file):
        load_dotenv(env_file, override=True)
    elif os.path.exists(".env"):
        load_dotenv(".env", override=True)

workers = int(os.getenv("WORKERS_COUNT", 2))
threads = int(os.getenv("WORKERS_PER_CORE", 2))

PORT = os.getenv("PORT", 8900)

bind = f"0.0.0.0:{PORT}"
worker_class = "uvicorn.workers.UvicornWorker"
wsgi_app = "app.app:get_app()"

timeout = 120  # Worker timeout in seconds
keepalive = 5  # Keep-alive timeout for client connections

accesslog = "-"  # '-' means log to stdout
errorlog = "-"  # '-' means log to stderr
loglevel = "info"

preload_app = False
