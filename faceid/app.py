"""
Face identity service
Main application entry point
"""
import atexit
import logging
import sys

from flask import Flask
from flask_cors import CORS

from faceid.config import get_config
from faceid.application.identity_service import IdentityService
from faceid.infrastructure.factory import create_face_service
from faceid.infrastructure.template_store import TemplateStore
from faceid.infrastructure.worker_pool import WorkerPool
from faceid.api.routes import api, init_routes

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


def create_identity_service(config=None, face_service=None, pool=None) -> IdentityService:
    """Wire the identity service from config"""
    config = config or get_config()

    logger.info("Initializing face detector...")
    try:
        face_service = face_service or create_face_service()
    except Exception as e:
        logger.error(f"Failed to initialize detector: {e}")
        raise

    pool = pool or WorkerPool(
        size=config.WORKERS,
        source_factory=create_face_service,
        threshold=config.MATCH_THRESHOLD,
        backend=config.WORKER_BACKEND,
    )
    return IdentityService(
        face_service=face_service,
        store=TemplateStore(),
        pool=pool,
        timeout=config.SCAN_TIMEOUT,
    )


def create_app(service: IdentityService = None) -> Flask:
    """Application factory"""
    config = get_config()

    app = Flask(__name__)
    app.config['DEBUG'] = config.DEBUG
    app.config['MAX_CONTENT_LENGTH'] = config.MAX_IMAGE_SIZE

    CORS(app)

    service = service or create_identity_service(config)
    init_routes(service)
    app.register_blueprint(api)
    app.extensions['identity_service'] = service

    logger.info("Application initialized successfully")
    return app


def main():
    """Main entry point"""
    config = get_config()
    configure_logging(config.LOG_LEVEL)

    logger.info(f"Starting face identity service on {config.HOST}:{config.PORT}")
    logger.info(f"Workers: {config.WORKERS} ({config.WORKER_BACKEND})")
    logger.info(f"Match threshold: {config.MATCH_THRESHOLD}")

    app = create_app()
    service = app.extensions['identity_service']
    service.pool.start()
    atexit.register(service.shutdown)

    app.run(
        host=config.HOST,
        port=config.PORT,
        debug=config.DEBUG,
        threaded=True,
        use_reloader=False,
    )


if __name__ == '__main__':
    main()
