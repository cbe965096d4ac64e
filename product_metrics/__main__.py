"""Run the API with uvicorn.

RUN:  python -m product_metrics

Equivalent to:  uvicorn product_metrics.main:app --host 0.0.0.0 --port $PORT
"""

from __future__ import annotations

import uvicorn

from product_metrics.core.config import SETTINGS


def main() -> None:
    uvicorn.run(
        "product_metrics.main:app",
        host="0.0.0.0",
        port=SETTINGS.port,
        log_level=SETTINGS.log_level,
        # Logging is configured by product_metrics.main; keep uvicorn's out of the way.
        log_config=None,
    )


if __name__ == "__main__":
    main()
