import logging
import os
import random
from pathlib import Path
from typing import Optional, Union

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from pairing import AssignmentError, NotEnoughParticipantsError, SecretSanta


class Assignment(BaseModel):
    giver: str = Field(..., min_length=1)
    giftee: str = Field(..., min_length=1)


class Health(BaseModel):
    status: str
    participants: int


BASE_DIR = Path(__file__).resolve().parent
NAMES_FILE = Path(os.getenv("NAMES_FILE", BASE_DIR / "students.txt"))
INDEX_FILE = Path(os.getenv("INDEX_FILE", BASE_DIR / "index.html"))
HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "8080")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
RANDOM_SEED = os.getenv("RANDOM_SEED")

# Names accepted by both logging and uvicorn.
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

logger = logging.getLogger(__name__)


def parse_seed(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"RANDOM_SEED must be an integer, got {value!r}.") from None


def create_app(
    names_file: Optional[Union[str, Path]] = None,
    index_file: Optional[Union[str, Path]] = None,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    """
    Draw the pairings and build the app around them.
    Raises OSError if the name list can't be read and
    NotEnoughParticipantsError if it has fewer than two names.
    Duplicate names that leave no valid draw raise AssignmentError.
    A non-integer RANDOM_SEED raises ValueError.
    """
    names_path = Path(names_file) if names_file is not None else NAMES_FILE
    index_path = Path(index_file) if index_file is not None else INDEX_FILE
    if rng is None:
        rng = random.Random(parse_seed(RANDOM_SEED))

    santa = SecretSanta.from_file(names_path, rng=rng)

    app = FastAPI(title="Secret Santa API")
    app.state.santa = santa

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", include_in_schema=False)
    def serve_index():
        if index_path.exists():
            return FileResponse(str(index_path))
        raise HTTPException(status_code=404, detail="Frontend not found.")

    @app.get("/query", response_model=Assignment)
    def query(name: Optional[str] = Query(None)):
        giver = (name or "").strip()
        if not giver:
            raise HTTPException(status_code=400, detail="Name parameter is required")
        giftee = santa.giftee_for(giver)
        if giftee is None:
            logger.debug("Lookup for unknown participant %r.", giver)
            raise HTTPException(
                status_code=404, detail="Name not found in Secret Santa list"
            )
        logger.debug("Lookup for %r answered.", giver)
        return Assignment(giver=giver, giftee=giftee)

    @app.get("/health", response_model=Health)
    def health():
        return Health(status="ok", participants=len(santa))

    return app


def main() -> None:
    """Validate settings, draw the pairings and serve them. Exits 1 on bad startup."""
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if LOG_LEVEL not in LOG_LEVELS:
        logger.error(
            "LOG_LEVEL must be one of %s, got %r.", ", ".join(LOG_LEVELS), LOG_LEVEL
        )
        raise SystemExit(1)
    logging.getLogger().setLevel(LOG_LEVEL)

    try:
        seed = parse_seed(RANDOM_SEED)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        raise SystemExit(1)
    if not PORT.isdigit():
        logger.error("Invalid configuration: PORT must be a number, got %r.", PORT)
        raise SystemExit(1)
    port = int(PORT)

    try:
        app = create_app(rng=random.Random(seed))
    except OSError as exc:
        logger.error("Error reading students file: %s", exc)
        raise SystemExit(1)
    except (NotEnoughParticipantsError, AssignmentError) as exc:
        logger.error("Error generating pairings: %s", exc)
        raise SystemExit(1)

    logger.info("Server running at http://%s:%d", HOST, port)
    uvicorn.run(app, host=HOST, port=port, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
