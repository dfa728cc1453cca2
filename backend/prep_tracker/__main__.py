"""Run the API with uvicorn: `python -m prep_tracker`."""

import uvicorn

from .config import settings


def main():
    uvicorn.run("prep_tracker.main:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    main()
