"""FastAPI adapter for the route table and middleware chains."""

from snippetbox.fastapi.router import PipelineMiddleware, install_routes, positive_int_param

__all__ = ["PipelineMiddleware", "install_routes", "positive_int_param"]
