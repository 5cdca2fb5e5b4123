#!/usr/bin/env python3
import uvicorn

from cellgate.api.server import app
from cellgate.config import load_config
from cellgate.utils.logging import configure_logging

if __name__ == "__main__":
    config = load_config()
    configure_logging(config.log_level, json_output=config.log_json)
    uvicorn.run(app, host=config.host, port=config.port)
