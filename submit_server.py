# submit_server.py
import sys

from logging_utils import setup_logging
from settings import load_settings
from webapp import create_app


def main() -> int:
    settings = load_settings()
    setup_logging(settings.log_level)
    app = create_app(settings)
    app.run(host="0.0.0.0", port=settings.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
