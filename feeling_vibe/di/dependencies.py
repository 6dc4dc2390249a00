# feeling_vibe/di/dependencies.py
import logging

from feeling_vibe.config import AppConfig
from feeling_vibe.helpers.clock import Clock, utc_now
from feeling_vibe.services.database_service import DatabaseService
from feeling_vibe.services.generation_service import GenerationService
from feeling_vibe.services.storage_service import StorageService
from feeling_vibe.usecases.analysis_usecase import AnalysisUseCase

logger = logging.getLogger(__name__)


class DependencyContainer:
    """Dependency injection container"""

    def __init__(self, config: AppConfig, clock: Clock = utc_now, mongo_client=None, openai_client=None):
        self.config = config
        self.clock = clock
        self.database_service = DatabaseService(config.database, clock=clock, mongo_client=mongo_client)
        self.storage_service = StorageService(config.storage, clock=clock)
        self.generation_service = GenerationService(config.external.openai, client=openai_client)
        self._analysis_usecase: AnalysisUseCase = None

        logger.info("Dependency container initialized")

    def initialize(self):
        """Select and connect the database and storage backends; raises ConfigurationError if none works"""
        self.database_service.initialize()
        self.storage_service.initialize()
        logger.info(
            f"📦 Services ready (database: {self.database_service.get_type()}, "
            f"storage: {self.storage_service.get_type()}, "
            f"generation: {'openai' if self.generation_service.is_available() else 'fallback'})"
        )

    def get_analysis_usecase(self) -> AnalysisUseCase:
        """Get analysis use case instance (singleton)"""
        if self._analysis_usecase is None:
            self._analysis_usecase = AnalysisUseCase(self.database_service, self.generation_service)
            logger.info("Analysis usecase initialized")
        return self._analysis_usecase

    def close(self):
        """Release backend connections"""
        try:
            self.database_service.disconnect()
        except Exception as e:
            logger.error(f"Error closing database service: {e}")
