"""Main entry point for running the FastAPI application with auto-reload."""
import uvicorn

from catalog.config import settings

if __name__ == "__main__":
    print(f"Starting {settings.app_name} v{settings.version}")
    print(f"Debug mode: {settings.debug}")
    print(f"Vector store: {settings.vector_store.backend.value}")
    print(f"Embedding model: {settings.embeddings.model_name}")
    print(f"Auto-reload: {'Enabled' if settings.debug else 'Disabled'}")
    print("-" * 50)

    uvicorn.run(
        "catalog.api:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        reload_dirs=["catalog", "ai"] if settings.debug else None,
        log_level=settings.logging.level.lower(),
    )
