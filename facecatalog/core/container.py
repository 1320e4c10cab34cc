"""Service container for dependency injection."""
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

# Import interfaces
from facecatalog.domain.interfaces.inference.backend import InferenceBackend
from facecatalog.domain.interfaces.storage.artifact_store import ArtifactStore
from facecatalog.domain.interfaces.storage.record_store import FaceRecordStore

# Import concrete implementations used for instantiation
from facecatalog.core.config import settings
from facecatalog.core.logging import get_logger
from facecatalog.infrastructure.database.session import build_engine, build_session_factory, init_schema
from facecatalog.infrastructure.inference.onnx_backend import OnnxInferenceBackend
from facecatalog.infrastructure.storage.filesystem.artifact_store import LocalArtifactStore
from facecatalog.infrastructure.storage.sql.record_store import SqlFaceRecordStore
from facecatalog.services.embedding import EmbeddingGenerator
from facecatalog.services.face_catalog import FaceCatalogService
from facecatalog.services.notifications import NotificationHub
from facecatalog.services.reconciliation import ArtifactReconciler
from facecatalog.services.retention import RetentionWorker

logger = get_logger(__name__)


class ServiceContainer:
    """Container for application services.

    This container manages the lifecycle and dependencies of all services in the application.
    The hub, store and backend are created once and shared by every caller.

    Example:
        ```python
        container = ServiceContainer()
        await container.initialize()

        # Get services from container
        catalog = container.face_catalog_service
        connection_id, subscription = container.notification_hub.create_connection()
        ```
    """

    def __init__(self) -> None:
        """Initialize empty container."""
        # Infrastructure
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None

        # Core services - Use interface type hints
        self.artifact_store: Optional[ArtifactStore] = None
        self.record_store: Optional[FaceRecordStore] = None
        self.inference_backend: Optional[InferenceBackend] = None
        self.notification_hub: Optional[NotificationHub] = None

        # Domain services (depend on interfaces)
        self.embedding_generator: Optional[EmbeddingGenerator] = None
        self.face_catalog_service: Optional[FaceCatalogService] = None
        self.reconciler: Optional[ArtifactReconciler] = None
        self.retention_worker: Optional[RetentionWorker] = None

    async def initialize(
        self,
        backend: Optional[InferenceBackend] = None,
        with_inference: bool = True,
        database_url: Optional[str] = None,
    ) -> None:
        """Initialize all services in the correct order.

        Args:
            backend: Inference backend to use instead of loading the ONNX model
            with_inference: Skip the model, generator and catalog service when False
                (maintenance commands only need storage)
            database_url: Overrides the configured database URL
        """
        self.engine = build_engine(database_url)
        self.session_factory = build_session_factory(self.engine)
        await init_schema(self.engine)

        self.artifact_store = LocalArtifactStore()
        self.record_store = SqlFaceRecordStore(self.session_factory, self.artifact_store)
        self.notification_hub = NotificationHub()
        self.reconciler = ArtifactReconciler(
            self.record_store,
            self.artifact_store,
            grace_period=timedelta(seconds=settings.RECONCILE_GRACE_SECONDS)
        )
        self.retention_worker = RetentionWorker(self.record_store)

        if with_inference or backend is not None:
            self.inference_backend = backend or OnnxInferenceBackend()
            self.embedding_generator = EmbeddingGenerator(self.inference_backend)
            self.face_catalog_service = FaceCatalogService(
                generator=self.embedding_generator,
                store=self.record_store,
                hub=self.notification_hub
            )

        logger.info(
            "Service container initialized",
            environment=settings.ENVIRONMENT,
            inference=self.inference_backend is not None
        )

    async def cleanup(self) -> None:
        """Cleanup all services in reverse order of initialization."""
        if self.retention_worker:
            await self.retention_worker.stop()
            self.retention_worker = None

        # Cleanup domain services
        self.face_catalog_service = None
        self.embedding_generator = None
        self.reconciler = None

        # Cleanup core services
        self.inference_backend = None
        self.notification_hub = None
        self.record_store = None
        self.artifact_store = None

        # Cleanup infrastructure
        if self.engine:
            await self.engine.dispose()
            self.engine = None
        self.session_factory = None


# Global container instance
container = ServiceContainer()
