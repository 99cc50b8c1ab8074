from pathlib import PurePath

from starlette.exceptions import HTTPException
from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

# 这些前缀属于 API，未命中时返回 404，不回退到 index.html
API_PREFIXES = {"api", "save", "health"}


class SPAStaticFiles(StaticFiles):
    """
    静态资源 + 单页兜底：命中的文件直接返回，其它路径回 index.html。
    """

    def __init__(self, *, directory: str, max_age: int = 3600):
        super().__init__(directory=directory, html=True)
        self.max_age = max_age

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            response = await super().get_response(path, scope)
        except HTTPException as exc:
            parts = PurePath(path).parts
            if exc.status_code != 404 or (parts and parts[0] in API_PREFIXES):
                raise
            response = await super().get_response("index.html", scope)
        response.headers.setdefault("Cache-Control", f"public, max-age={self.max_age}")
        return response
