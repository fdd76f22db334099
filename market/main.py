import logging

import uvicorn

from market.config import settings
from market.db.sqlite import init_db


def main() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    init_db()

    uvicorn.run("market.web.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
