"""FastAPI application proxying GitHub and AI providers for the visualizer."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, TypeVar

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..config import LayoutConfig, RepoVizConfig
from ..errors import (
    AuthRequired,
    EmptyResponse,
    InvalidInput,
    MissingCredential,
    NetworkError,
    NotFound,
    ProviderError,
    RateLimited,
    RepoVizError,
)
from ..github.client import GitHubClient
from ..hierarchy import build_hierarchy
from ..layout import create_layout
from ..llm.runner import ExplanationRunner
from ..logging import get_logger
from ..render import RenderParams, build_scene

logger = get_logger("service")

T = TypeVar("T")

_STATUS_BY_KIND: Dict[str, int] = {
    InvalidInput.kind: 400,
    MissingCredential.kind: 400,
    AuthRequired.kind: 401,
    NotFound.kind: 404,
    RateLimited.kind: 429,
    NetworkError.kind: 502,
    ProviderError.kind: 502,
    EmptyResponse.kind: 502,
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TreeRequest(_CamelModel):
    repo_url: str = Field(alias="repoUrl")
    token: Optional[str] = None
    branch: Optional[str] = None


class BranchesRequest(_CamelModel):
    repo_url: str = Field(alias="repoUrl")
    token: Optional[str] = None


class CommitsRequest(_CamelModel):
    repo_url: str = Field(alias="repoUrl")
    token: Optional[str] = None
    filepath: str
    branch: Optional[str] = None


class ContentRequest(_CamelModel):
    repo_url: str = Field(alias="repoUrl")
    file_sha: Optional[str] = Field(default=None, alias="fileSha")
    token: Optional[str] = None
    path: Optional[str] = None


class ExplainRequest(_CamelModel):
    code: str
    context: str = "file"
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    provider: Optional[str] = None
    model: Optional[str] = None


class GraphRequest(_CamelModel):
    repo_url: str = Field(alias="repoUrl")
    token: Optional[str] = None
    branch: Optional[str] = None
    view: str = "graph"
    width: Optional[float] = None
    height: Optional[float] = None
    search_term: str = Field(default="", alias="searchTerm")


class ExplainResponse(BaseModel):
    explanation: str


class HealthResponse(BaseModel):
    status: str


ClientFactory = Callable[[Optional[str]], GitHubClient]
ExplainerFactory = Callable[[], ExplanationRunner]


def _default_client_factory(config: RepoVizConfig | None) -> ClientFactory:
    def factory(token: Optional[str]) -> GitHubClient:
        if config is None:
            return GitHubClient(token)
        return GitHubClient(
            token or config.github.token,
            api_url=config.github.api_url,
            request_timeout=config.github.request_timeout,
        )

    return factory


def _default_explainer_factory(config: RepoVizConfig | None) -> ExplainerFactory:
    def factory() -> ExplanationRunner:
        if config is None:
            return ExplanationRunner()
        return ExplanationRunner(
            provider=config.explain.provider,
            model=config.explain.model,
            api_keys=config.explain.api_keys,
            temperature=config.explain.temperature,
            request_timeout=config.explain.request_timeout,
        )

    return factory


async def _run_blocking(func: Callable[[], T]) -> T:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


def create_app(
    client_factory: ClientFactory | None = None,
    explainer_factory: ExplainerFactory | None = None,
    *,
    config: RepoVizConfig | None = None,
) -> FastAPI:
    """Create the FastAPI application exposing the visualizer's proxy endpoints."""

    app = FastAPI(title="Repo Visualizer Service", version="1.0.0")
    make_client = client_factory or _default_client_factory(config)
    make_explainer = explainer_factory or _default_explainer_factory(config)
    layout_defaults = config.layout if config is not None else LayoutConfig()

    async def get_explainer() -> ExplanationRunner:
        return make_explainer()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/api/tree")
    async def tree(payload: TreeRequest) -> List[Dict[str, Any]]:
        client = make_client(payload.token)
        entries = await _run_blocking(lambda: client.fetch_tree(payload.repo_url, payload.branch))
        return [
            {"path": entry.path, "type": entry.type, "size": entry.size, "sha": entry.sha}
            for entry in entries
        ]

    @app.post("/api/branches")
    async def branches(payload: BranchesRequest) -> List[str]:
        client = make_client(payload.token)
        return await _run_blocking(lambda: client.fetch_branches(payload.repo_url))

    @app.post("/api/commits")
    async def commits(payload: CommitsRequest) -> List[Dict[str, str]]:
        client = make_client(payload.token)
        history = await _run_blocking(
            lambda: client.fetch_commits(payload.repo_url, payload.filepath, payload.branch)
        )
        return [
            {
                "sha": commit.id,
                "author": commit.author,
                "date": commit.timestamp,
                "message": commit.message,
            }
            for commit in history
        ]

    @app.post("/api/content")
    async def content(payload: ContentRequest) -> Dict[str, Any]:
        if not payload.file_sha:
            raise InvalidInput("File SHA is required.")
        client = make_client(payload.token)
        blob = await _run_blocking(
            lambda: client.fetch_blob(payload.repo_url, payload.file_sha or "", payload.path)
        )
        return blob.as_dict()

    @app.post("/api/explain", response_model=ExplainResponse)
    async def explain(
        payload: ExplainRequest,
        explainer: ExplanationRunner = Depends(get_explainer),
    ) -> ExplainResponse:
        mode = "selection" if payload.context in ("line", "selection") else "file"
        text = await _run_blocking(
            lambda: explainer.explain(
                payload.code,
                mode=mode,
                provider=payload.provider,
                model=payload.model or None,
                api_key=payload.api_key,
            )
        )
        return ExplainResponse(explanation=text)

    @app.post("/api/graph")
    async def graph(payload: GraphRequest) -> Dict[str, Any]:
        client = make_client(payload.token)
        entries = await _run_blocking(lambda: client.fetch_tree(payload.repo_url, payload.branch))
        repo_tree = build_hierarchy(entries)
        settings = replace(layout_defaults)
        if payload.width:
            settings.width = payload.width
        if payload.height:
            settings.height = payload.height
        try:
            layout = create_layout(payload.view, repo_tree, settings)
        except ValueError as exc:
            raise InvalidInput(str(exc)) from exc
        ticks = 0
        while ticks < settings.max_ticks and layout.step():
            ticks += 1
        layout.stop()
        view = "tree" if layout.name == "tree" else "graph"
        scene = build_scene(
            repo_tree,
            layout.current_frame(),
            None,
            RenderParams(search_term=payload.search_term),
            view=view,
        )
        return {
            "nodes": [
                {
                    "id": node.id,
                    "name": node.name,
                    "kind": node.kind,
                    "size": node.size,
                    "sha": node.sha,
                    "children": list(node.children),
                }
                for node in repo_tree
            ],
            "edges": [{"source": edge.parent, "target": edge.child} for edge in repo_tree.edges],
            "ticks": ticks,
            "scene": scene.as_dict(),
        }

    @app.exception_handler(RepoVizError)
    async def repoviz_error_handler(_: Any, exc: RepoVizError) -> JSONResponse:
        status = _STATUS_BY_KIND.get(exc.kind, 500)
        logger.warning("Request failed (%s): %s", exc.kind, exc)
        return JSONResponse(status_code=status, content={"message": str(exc), "kind": exc.kind})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 3001, *, config: RepoVizConfig | None = None
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app(config=config)
    # Loggers are already configured by the CLI; keep uvicorn from replacing them.
    uvicorn.run(app, host=host, port=port, log_config=None)
