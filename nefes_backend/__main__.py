import uvicorn

from nefes_backend.core.config import get_settings
from nefes_backend.core.logger import get_logger
from nefes_backend.main import create_app
from nefes_backend.routes.public_router import ENDPOINTS

logger = get_logger("nefes_backend")


def main() -> None:
    settings = get_settings()
    app = create_app(settings)
    logger.info(f"Listening on http://{settings.HOST}:{settings.PORT}")
    for name, route in ENDPOINTS.items():
        logger.info(f"  {route:<28} ({name})")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
