"""
Server component for ratingmath.

This module provides a FastAPI server exposing the analytics of the
currently loaded dataset.
"""

import logging
import threading
from typing import Optional

import fastapi
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ratingmath.components.config import Config, ConfigManager
from ratingmath.math.corr import best_and_worst_matches
from ratingmath.math.stats import location_signed_squared_sums, most_different_location, person_stats
from ratingmath.session import Session, SessionManager

# Set up logging
logger = logging.getLogger(__name__)

# Config log levels to uvicorn log levels
LOG_LEVELS = {
    "debug": "debug",
    "info": "info",
    "warn": "warning",
    "warning": "warning",
    "error": "error",
    "critical": "critical"
}


# Define API models
class ReloadRequest(BaseModel):
    """Dataset reload request model."""

    source: Optional[str] = None


class SortRequest(BaseModel):
    """Correlation matrix sort request model."""

    person: str


class MoveRequest(BaseModel):
    """Correlation matrix move request model."""

    person: str
    direction: int


class Server:
    """
    FastAPI server for ratingmath.
    """

    def __init__(self,
                 session: Session,
                 config: Optional[Config] = None):
        """
        Initialize a server.

        Args:
            session: Session holding the loaded dataset
            config: Configuration for the server
        """
        self.session = session
        self.config = config or ConfigManager.get_config()

        # Create FastAPI app
        self.app = FastAPI(
            title="ratingmath API",
            description="Correlation, clustering and ranking of people x location scores",
            version="0.1.0"
        )

        # Set up CORS
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.get('server.cors-origins', ['*']),
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

        self._setup_routes()
        self._setup_validation()
        self._setup_error_handling()

    def _person_index(self, name: str) -> int:
        idx = self.session.person_index(name)
        if idx is None:
            raise HTTPException(status_code=404, detail=f"Person not found: {name}")
        return idx

    def _require_dataset(self) -> None:
        if self.session.version == 0:
            raise HTTPException(status_code=409, detail="No dataset loaded")

    def _setup_routes(self) -> None:
        """
        Set up API routes.
        """
        session = self.session

        # Health check
        @self.app.get("/health")
        async def health_check():
            return {"status": "ok", "version": session.version}

        # Dataset
        @self.app.get("/api/v1/dataset")
        async def get_dataset():
            self._require_dataset()
            return session.get_summary()

        @self.app.post("/api/v1/dataset/reload")
        async def reload_dataset(request: ReloadRequest):
            try:
                session.load(request.source)
            except (ValueError, FileNotFoundError) as e:
                raise HTTPException(status_code=400, detail=str(e))
            return session.get_summary()

        # People
        @self.app.get("/api/v1/people")
        async def list_people():
            self._require_dataset()
            return {"people": session.matrix.names()}

        @self.app.get("/api/v1/people/{name}")
        async def get_person(name: str):
            self._require_dataset()
            return session.person_report(self._person_index(name))

        @self.app.get("/api/v1/people/{name}/stats")
        async def get_person_stats(name: str):
            self._require_dataset()
            return person_stats(session.matrix.person(self._person_index(name)))

        @self.app.get("/api/v1/people/{name}/matches")
        async def get_person_matches(name: str):
            self._require_dataset()
            return best_and_worst_matches(session.matrix, self._person_index(name))

        @self.app.get("/api/v1/people/{name}/most-different")
        async def get_most_different(name: str):
            self._require_dataset()
            return most_different_location(session.matrix, self._person_index(name))

        @self.app.get("/api/v1/people/{name}/cluster")
        async def get_person_cluster(name: str):
            self._require_dataset()
            return {"name": name, "cluster": session.cluster_of(self._person_index(name))}

        # Comparison
        @self.app.get("/api/v1/compare")
        async def compare(a: str, b: str):
            self._require_dataset()
            if a == b:
                raise HTTPException(status_code=400, detail="Please choose two different people")

            result = session.compare(self._person_index(a), self._person_index(b))
            if result is None:
                raise HTTPException(
                    status_code=422,
                    detail=f"Not enough overlapping rated locations between {a} and {b} (need at least 2)"
                )
            return result

        # Correlation matrix
        @self.app.get("/api/v1/correlation-matrix")
        async def get_correlation_matrix():
            self._require_dataset()
            return session.correlation_matrix()

        @self.app.post("/api/v1/correlation-matrix/sort")
        async def sort_correlation_matrix(request: SortRequest):
            self._require_dataset()
            session.sort_by_person(self._person_index(request.person))
            return session.correlation_matrix()

        @self.app.post("/api/v1/correlation-matrix/move")
        async def move_in_correlation_matrix(request: MoveRequest):
            self._require_dataset()
            session.move_in_order(self._person_index(request.person), request.direction)
            return session.correlation_matrix()

        # Rankings
        @self.app.get("/api/v1/ranking")
        async def get_ranking(exponent: Optional[float] = None):
            self._require_dataset()
            return {"ranking": session.ranking(exponent)}

        @self.app.get("/api/v1/signed-squared-sums")
        async def get_signed_squared_sums():
            self._require_dataset()
            return location_signed_squared_sums(session.matrix)

        # Clusters
        @self.app.get("/api/v1/clusters")
        async def get_clusters():
            self._require_dataset()
            result = session.clusters()
            return {
                "k": result['k'],
                "iterations": result['iterations'],
                "assignments": dict(zip(session.matrix.names(), result['assignments'])),
                "clusters": session.cluster_extremes()
            }

        # Overview
        @self.app.get("/api/v1/overview")
        async def get_overview():
            self._require_dataset()
            return session.overview()

    def _setup_validation(self) -> None:
        """
        Set up request validation.
        """
        @self.app.exception_handler(fastapi.exceptions.RequestValidationError)
        async def validation_exception_handler(request, exc):
            return JSONResponse(
                status_code=422,
                content={"detail": str(exc)}
            )

    def _setup_error_handling(self) -> None:
        """
        Set up error handling.
        """
        @self.app.exception_handler(Exception)
        async def generic_exception_handler(request, exc):
            logger.exception("Unhandled exception")
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error"}
            )

    def run(self) -> None:
        """
        Run the server in the current thread until interrupted.
        """
        import uvicorn

        port = self.config.get('server.port', 8080)
        host = self.config.get('server.host', 'localhost')

        logger.info(f"Server starting at http://{host}:{port}")
        uvicorn.run(
            self.app,
            host=host,
            port=port,
            log_level=LOG_LEVELS.get(self.config.get('logging.level', 'info'), 'info')
        )


class ServerManager:
    """
    Singleton manager for the server.
    """

    _instance = None
    _lock = threading.RLock()

    @classmethod
    def get_server(cls,
                   session: Optional[Session] = None,
                   config: Optional[Config] = None) -> Server:
        """
        Get the server instance.

        Args:
            session: Session (defaults to the shared session)
            config: Configuration

        Returns:
            Server instance
        """
        with cls._lock:
            if cls._instance is None:
                cls._instance = Server(session or SessionManager.get_session(config), config)

            return cls._instance

    @classmethod
    def shutdown(cls) -> None:
        """
        Forget the server instance.
        """
        with cls._lock:
            cls._instance = None
