"""
SymSheet — Entry point.

Serve the worksheet API with uvicorn.
"""

import uvicorn

from symsheet.config import configure_logging

HOST = "127.0.0.1"
PORT = 8000


def main() -> None:
    configure_logging()
    uvicorn.run("backend.app.main:app", host=HOST, port=PORT)


if __name__ == "__main__":
    main()
