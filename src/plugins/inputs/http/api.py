"""
HTTP Input Plugin - REST API for DNS zones and records.

Exposes namespaced CRUD endpoints for each resource kind plus an SSE watch
stream. Deleting through the API only requests deletion; the resource stays
visible until its reconciler has cleaned up and released the finalizer.
"""

import asyncio
import logging
import os
import re
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from errors import AlreadyExistsError, ConflictError, NotFoundError
from events import EventBus, ResourceEvent
from plugins.inputs.base import InputPlugin
from resources import DNSRecord, DNSZone, ObjectKey
from store import ResourceStore
from validation import validate_spec, validate_spec_update

logger = logging.getLogger(__name__)

# Kubernetes-style name pattern: lowercase alphanumeric, hyphens, max 63 chars
NAME_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")
MAX_NAME_LENGTH = 63

# URL plural -> resource kind
RESOURCE_PLURALS: Dict[str, str] = {
    "dnszones": DNSZone.KIND,
    "dnsrecords": DNSRecord.KIND,
}


def validate_name_format(value: str, field_name: str) -> str:
    """Validate that a name follows Kubernetes naming conventions."""
    if not value:
        raise ValueError(f"{field_name} cannot be empty")
    if len(value) > MAX_NAME_LENGTH:
        raise ValueError(f"{field_name} cannot exceed {MAX_NAME_LENGTH} characters")
    if not NAME_PATTERN.match(value):
        raise ValueError(
            f"{field_name} must consist of lowercase alphanumeric characters or '-', "
            f"must start and end with an alphanumeric character"
        )
    return value


class ResourceCreate(BaseModel):
    """Request model for creating a zone or record."""

    name: str = Field(..., description="Resource name")
    spec: Dict[str, Any] = Field(..., description="Resource specification")
    annotations: Optional[Dict[str, str]] = Field(None, description="Annotations")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_name_format(v, "name")


class ResourceUpdate(BaseModel):
    """Request model for replacing a resource's spec."""

    model_config = ConfigDict(populate_by_name=True)

    spec: Dict[str, Any] = Field(..., description="Updated specification")
    resource_version: Optional[int] = Field(
        None,
        alias="resourceVersion",
        description="Reject the update if the resource has changed since this version",
    )


class HTTPInputPlugin(InputPlugin):
    """
    Input plugin that provides a REST API for DNS resources.

    Implements the standard InputPlugin interface using FastAPI.
    """

    def __init__(self):
        self.app: Optional[FastAPI] = None
        self.host: str = "0.0.0.0"
        self.port: int = 8000
        self.server = None
        self._store: Optional[ResourceStore] = None
        self._event_bus: Optional[EventBus] = None
        self._config: Dict[str, Any] = {}

    @property
    def name(self) -> str:
        return "http"

    @property
    def version(self) -> str:
        return "1.0.0"

    @classmethod
    def load_config_from_env(cls) -> Dict[str, Any]:
        """Load HTTP plugin configuration from environment variables."""
        return {
            "host": os.getenv("API_HOST", "0.0.0.0"),
            "port": int(os.getenv("API_PORT", "8000")),
        }

    async def initialize(self, config: Dict[str, Any]) -> None:
        """Initialize the HTTP API plugin and register its routes."""
        self._config = config
        self.host = config.get("host", "0.0.0.0")
        self.port = config.get("port", 8000)

        self.app = FastAPI(
            title="CloudKit DNS API",
            description="Declarative DNS zones and records",
            version=self.version,
        )
        self._setup_routes()

        logger.info(f"HTTP input plugin initialized on {self.host}:{self.port}")

    def set_store(self, store: ResourceStore) -> None:
        self._store = store

    def set_event_bus(self, event_bus: EventBus) -> None:
        self._event_bus = event_bus

    def _require_store(self) -> ResourceStore:
        if not self._store:
            raise HTTPException(status_code=503, detail="Resource store not available")
        return self._store

    def _setup_routes(self) -> None:
        """
        Set up all FastAPI routes.

        - Health check: GET /
        - Per kind: /api/v1/namespaces/{namespace}/{dnszones,dnsrecords}
        - Watch stream: GET /api/v1/events
        """
        if not self.app:
            raise RuntimeError("App not initialized")

        @self.app.get("/")
        async def health_check():
            """Health check endpoint."""
            return {"status": "ok", "service": "cloudkit-dns-controller"}

        for plural, kind in RESOURCE_PLURALS.items():
            self._add_resource_routes(plural, kind)

        @self.app.get("/api/v1/events")
        async def stream_events(kind: Optional[str] = None):
            """SSE stream of resource events, optionally for one kind."""
            if not self._event_bus:
                raise HTTPException(
                    status_code=503,
                    detail="Event streaming not available",
                )

            filter_fn = None
            if kind:
                watched_kind = kind

                def filter_fn(event: ResourceEvent) -> bool:
                    return event.kind == watched_kind

            subscriber_id, subscription = await self._event_bus.subscribe(filter_fn)

            async def event_generator():
                try:
                    async for event in subscription:
                        yield event.to_sse()
                except asyncio.CancelledError:
                    pass
                finally:
                    await self._event_bus.unsubscribe(subscriber_id)

            return StreamingResponse(
                event_generator(),
                media_type="text/event-stream",
                headers={
                    "Cache-Control": "no-cache",
                    "X-Accel-Buffering": "no",
                },
            )

    def _add_resource_routes(self, plural: str, kind: str) -> None:
        """Register create/list/get/update/delete routes for one kind."""
        collection = f"/api/v1/namespaces/{{namespace}}/{plural}"
        item = f"{collection}/{{name}}"

        @self.app.post(collection, status_code=201, name=f"create_{plural}")
        async def create_resource(namespace: str, body: ResourceCreate):
            store = self._require_store()
            is_valid, error = validate_spec(kind, body.spec)
            if not is_valid:
                raise HTTPException(status_code=422, detail=error)

            try:
                validate_name_format(namespace, "namespace")
            except ValueError as e:
                raise HTTPException(status_code=422, detail=str(e))

            obj = store.scheme.decode(
                {
                    "kind": kind,
                    "metadata": {
                        "name": body.name,
                        "namespace": namespace,
                        "annotations": body.annotations or {},
                    },
                    "spec": body.spec,
                }
            )
            try:
                created = await store.create(obj)
            except AlreadyExistsError as e:
                raise HTTPException(status_code=409, detail=str(e))
            except Exception as e:
                logger.error(f"Error creating {kind} {namespace}/{body.name}: {e}")
                raise HTTPException(status_code=500, detail=str(e))
            return created.to_dict()

        @self.app.get(collection, name=f"list_{plural}")
        async def list_resources(namespace: str):
            store = self._require_store()
            try:
                items = await store.list(kind, namespace=namespace)
            except Exception as e:
                logger.error(f"Error listing {kind} in {namespace}: {e}")
                raise HTTPException(status_code=500, detail=str(e))
            return {"kind": f"{kind}List", "items": [obj.to_dict() for obj in items]}

        @self.app.get(item, name=f"get_{plural}")
        async def get_resource(namespace: str, name: str):
            store = self._require_store()
            try:
                obj = await store.get(kind, ObjectKey(namespace, name))
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except Exception as e:
                logger.error(f"Error getting {kind} {namespace}/{name}: {e}")
                raise HTTPException(status_code=500, detail=str(e))
            return obj.to_dict()

        @self.app.put(item, name=f"update_{plural}")
        async def update_resource(namespace: str, name: str, body: ResourceUpdate):
            store = self._require_store()
            is_valid, error = validate_spec(kind, body.spec)
            if not is_valid:
                raise HTTPException(status_code=422, detail=error)

            key = ObjectKey(namespace, name)
            try:
                obj = await store.get(kind, key)
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except Exception as e:
                logger.error(f"Error getting {kind} {key}: {e}")
                raise HTTPException(status_code=500, detail=str(e))

            spec = type(obj.spec).from_dict(body.spec)
            is_valid, error = validate_spec_update(
                kind, obj.spec.to_dict(), spec.to_dict()
            )
            if not is_valid:
                raise HTTPException(status_code=422, detail=error)

            obj.spec = spec
            if body.resource_version is not None:
                obj.metadata.resource_version = body.resource_version
            try:
                await store.update(obj)
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except ConflictError as e:
                raise HTTPException(status_code=409, detail=str(e))
            except Exception as e:
                logger.error(f"Error updating {kind} {key}: {e}")
                raise HTTPException(status_code=500, detail=str(e))
            return obj.to_dict()

        @self.app.delete(item, status_code=202, name=f"delete_{plural}")
        async def delete_resource(namespace: str, name: str):
            store = self._require_store()
            key = ObjectKey(namespace, name)
            try:
                await store.delete(kind, key)
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except Exception as e:
                logger.error(f"Error deleting {kind} {key}: {e}")
                raise HTTPException(status_code=500, detail=str(e))
            return {
                "message": f"{kind} marked for deletion",
                "namespace": namespace,
                "name": name,
            }

    async def start(self) -> None:
        """Start the HTTP server."""
        if not self.app:
            raise RuntimeError("App not initialized")

        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="info",
        )
        self.server = uvicorn.Server(config)

        logger.info(f"Starting HTTP input plugin on {self.host}:{self.port}")
        await self.server.serve()

    async def stop(self) -> None:
        """Stop the HTTP server gracefully."""
        logger.info("Stopping HTTP input plugin")
        if self.server:
            self.server.should_exit = True

    async def health_check(self) -> tuple[bool, str]:
        """Check if the HTTP API is healthy."""
        if self.server and self.server.started:
            return True, "HTTP API is running"
        return False, "HTTP API is not running"
