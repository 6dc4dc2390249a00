import sys
import logging
from dotenv import load_dotenv

from feeling_vibe.api.fastapi_server import FastAPIServer
from feeling_vibe.config import AppConfig
from feeling_vibe.di.dependencies import DependencyContainer
from feeling_vibe.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENVIRONMENTS = ["development", "production", "test"]


def main():
    """Application entry point"""
    env_version = "development"
    if len(sys.argv) > 1:
        if sys.argv[1] not in ENVIRONMENTS:
            print(f"❌ Environment must be one of: {ENVIRONMENTS}")
            sys.exit(1)
        env_version = sys.argv[1]

    load_dotenv(f'.env.{env_version}')
    config = AppConfig.from_env()

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger.info(f"🔧 Configuration loaded for environment: {env_version}")

    if not config.validate():
        sys.exit(1)

    container = DependencyContainer(config)
    try:
        container.initialize()
        server = FastAPIServer(container)
        server.run()
    except ConfigurationError as e:
        logger.error(f"💥 Startup failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("⌨️  Application interrupted by user")
    finally:
        container.close()


if __name__ == "__main__":
    main()
