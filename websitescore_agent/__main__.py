"""Run the API locally: ``python -m websitescore_agent [--host H] [--port P]``."""
from __future__ import annotations

import argparse
import logging
import os


def main() -> None:
    parser = argparse.ArgumentParser(description="WebsiteScore API server")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "5000")))
    parser.add_argument(
        "--log-level",
        default=os.getenv("WEBSITESCORE_LOG_LEVEL", "info"),
        choices=["debug", "info", "warning", "error"],
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    import uvicorn

    uvicorn.run("websitescore_agent.main:app", host=args.host, port=args.port, log_level=args.log_level)


if __name__ == "__main__":
    main()
