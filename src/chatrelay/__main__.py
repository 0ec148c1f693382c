"""Run the relay with uvicorn: ``python -m chatrelay``."""

import uvicorn

from chatrelay.app import get_app
from chatrelay.configs.config import get_app_config


def main() -> None:
    config = get_app_config()
    uvicorn.run(
        get_app(config),
        host=config.api.host,
        port=config.api.port,
        log_config=None,  # root logger is configured by setup_logging
    )


if __name__ == "__main__":
    main()
