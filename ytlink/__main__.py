import uvicorn

from .config import Settings


def main() -> None:
    settings = Settings.from_env()
    uvicorn.run("ytlink.main:app", host="0.0.0.0", port=settings.port, reload=False)


if __name__ == "__main__":
    main()
