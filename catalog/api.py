"""FastAPI app with health, catalog ingestion and product search endpoints.

Collaborators (embedding client, vector store) are provided through FastAPI
dependencies so they can be swapped in tests.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ai.embeddings import EmbeddingClient, SentenceTransformerEmbedder
from .config import settings
from .logging_config import setup_logging
from .pipelines.ingest import IngestionError, ingest_catalog
from .pipelines.search import search_products
from .vectorstore import VectorStore, build_vector_store

logger = logging.getLogger(__name__)


# Pydantic request/response models
class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: str | None = None


class CreateVectorDatabaseRequest(BaseModel):
    """Catalog ingestion request."""
    model_config = ConfigDict(populate_by_name=True)

    source_url: str = Field(
        min_length=1,
        validation_alias=AliasChoices("source_url", "googleDriveUrl"),
        description="URL of the catalog CSV feed",
    )


class CreateVectorDatabaseResponse(BaseModel):
    """Catalog ingestion response."""
    status: str
    count: int
    batches: int
    message: str


class SearchRequest(BaseModel):
    """Product search request."""
    query: str = ""


class ProductMetadataDTO(BaseModel):
    """Product metadata as stored with each vector."""
    name: str = ""
    shortDescription: str = ""
    sku: str = ""


class SearchMatchDTO(BaseModel):
    """Single search match."""
    score: float
    metadata: ProductMetadataDTO


@lru_cache(maxsize=1)
def get_embedder() -> EmbeddingClient:
    """Shared embedding client."""
    return SentenceTransformerEmbedder()


@lru_cache(maxsize=1)
def get_vector_store() -> VectorStore:
    """Shared vector store."""
    return build_vector_store()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown logic."""
    setup_logging()
    logger.info("Application starting up")

    yield

    logger.info("Application shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Product catalog ingestion and semantic search",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["POST", "OPTIONS", "GET"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(IngestionError)
async def ingestion_error_handler(request, exc: IngestionError):
    """Report ingestion failures as a generic server error."""
    logger.error(f"Ingestion error ({exc.stage}): {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="ingestion_error",
            detail="Failed to ingest catalog",
        ).model_dump(),
    )


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", version=settings.version)


@app.post(
    "/api/create-vector-database",
    response_model=CreateVectorDatabaseResponse,
    status_code=status.HTTP_200_OK,
)
async def create_vector_database(
    request: CreateVectorDatabaseRequest,
    embedder: EmbeddingClient = Depends(get_embedder),
    store: VectorStore = Depends(get_vector_store),
) -> CreateVectorDatabaseResponse:
    """Load a catalog CSV feed into the vector store.

    Fetches the feed, deduplicates products by sku, embeds them in batches
    and upserts the vectors. Re-running with the same feed overwrites the
    existing vectors.
    """
    logger.info(f"Ingestion requested for {request.source_url}")

    result = await ingest_catalog(request.source_url, embedder=embedder, store=store)

    return CreateVectorDatabaseResponse(
        status="success",
        count=result.count,
        batches=result.batches,
        message=f"Embedded {result.count} products",
    )


@app.post("/api/search-product", response_model=list[SearchMatchDTO])
async def search_product(
    request: SearchRequest,
    embedder: EmbeddingClient = Depends(get_embedder),
    store: VectorStore = Depends(get_vector_store),
) -> list[SearchMatchDTO]:
    """Semantic product search. Returns an empty list when nothing matches
    or the search backend is unavailable."""
    matches = await search_products(request.query, embedder=embedder, store=store)
    return [
        SearchMatchDTO(
            score=m.score,
            metadata=ProductMetadataDTO(**m.metadata),
        )
        for m in matches
    ]
