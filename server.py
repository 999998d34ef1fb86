import argparse
import os

import uvicorn
from dotenv import load_dotenv

from app.config import settings
from app.logger.logger import logger

ENVIRONMENTS = ["dev", "docker", "prod", "local", "rc"]


def load_environment(env: str) -> None:
    # local runs read .env, every other environment reads .{env}.env
    env_file = ".env" if env == "local" else f".{env}.env"

    if os.path.exists(env_file):
        logger.debug(f"Loading environment variables from {env_file}")
        load_dotenv(env_file, override=True)
    elif os.path.exists(".env"):
        logger.debug(f"Environment file {env_file} not found, falling back to .env")
        load_dotenv(".env", override=True)
    else:
        logger.debug("No environment files found. Using system environment variables.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Start the Mixpreset API server.")
    parser.add_argument(
        "--env",
        type=str,
        choices=ENVIRONMENTS,
        default="local",
        help="Specify the environment to use (default=local).",
    )
    args = parser.parse_args()

    load_environment(args.env)

    logger.info(f"Starting {settings.APP_NAME} on port {settings.PORT} ({args.env})")
    uvicorn.run(
        "app.app:get_app",
        workers=settings.WORKERS_COUNT,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        factory=True,
    )


if __name__ == "__main__":
    main()
