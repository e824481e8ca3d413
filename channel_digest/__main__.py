"""Run the operator server: python -m channel_digest"""

import uvicorn

from channel_digest.adapters.web.server import create_app
from channel_digest.app import DigestBot
from channel_digest.config import AppConfig


def main():
    config = AppConfig.from_env()
    app = create_app(lambda: DigestBot.from_config(config), auto_start=config.auto_start)
    uvicorn.run(app, host="0.0.0.0", port=config.port, log_level="info")


if __name__ == "__main__":
    main()
