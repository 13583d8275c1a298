"""Shared fixtures: an in-process aiohttp app standing in for the admin API."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


class FakeBackend:
    """Minimal admin API plus a presigned-URL storage endpoint."""

    def __init__(self, valid_token: str = "valid"):
        self.valid_token = valid_token
        self.issued_token = valid_token
        self.refresh_tokens = {"r1"}
        self.requests: List[Dict[str, Any]] = []
        self.bodies: List[Dict[str, Any]] = []
        self.refresh_requests: List[Dict[str, Any]] = []
        self.puts: List[Dict[str, Any]] = []
        self.put_paths: List[str] = []

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/auth/refresh-token", self.refresh)
        app.router.add_post("/files/upload-url", self._protected(self.upload_url))
        app.router.add_post("/files/upload-urls", self._protected(self.upload_urls))
        app.router.add_post("/files/move-permanent", self._protected(self.move_permanent))
        app.router.add_post(
            "/files/move-multiple-permanent", self._protected(self.move_multiple_permanent)
        )
        app.router.add_delete("/files/delete", self._protected(self.delete))
        app.router.add_get("/files/info/{key:.+}", self._protected(self.info))
        app.router.add_put("/storage/{name}", self.storage_put)
        return app

    def _protected(self, handler):
        async def wrapped(request: web.Request) -> web.Response:
            self.requests.append(
                {"path": request.path, "authorization": request.headers.get("Authorization")}
            )
            if request.headers.get("Authorization") != f"Bearer {self.valid_token}":
                return web.json_response(
                    {"success": False, "message": "Unauthorized"}, status=401
                )
            return await handler(request)

        return wrapped

    @staticmethod
    def _grant(request: web.Request, key: str, file_name: str) -> Dict[str, Any]:
        origin = f"{request.scheme}://{request.host}"
        return {
            "key": key,
            "url": f"{origin}/storage/{file_name}",
            "publicUrl": f"https://cdn.example.com/{key}",
            "fileName": file_name,
        }

    async def refresh(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.refresh_requests.append(
            {"body": body, "authorization": request.headers.get("Authorization")}
        )
        if body.get("refreshToken") not in self.refresh_tokens:
            return web.json_response(
                {"success": False, "message": "Invalid refresh token"}, status=401
            )
        return web.json_response(
            {"success": True, "data": {"accessToken": self.issued_token, "refreshToken": "r2"}}
        )

    async def upload_url(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.bodies.append(body)
        if body["fileName"].startswith("bad"):
            return web.json_response(
                {"success": False, "message": "Bad file", "errorCode": "INVALID_FILE"},
                status=400,
            )
        key = f"{body.get('folder', 'uploads')}/1-{body['fileName']}"
        return web.json_response(
            {"success": True, "data": self._grant(request, key, body["fileName"])}
        )

    async def upload_urls(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.bodies.append(body)
        folder = body.get("folder", "uploads")
        grants = [
            self._grant(request, f"{folder}/{i + 1}-{item['fileName']}", item["fileName"])
            for i, item in enumerate(body["files"])
        ]
        return web.json_response({"success": True, "data": {"uploadUrls": grants}})

    @staticmethod
    def _promoted(key: str, folder: str) -> Dict[str, str]:
        new_key = f"{folder}/{key.split('/')[-1]}"
        return {"key": new_key, "publicUrl": f"https://cdn.example.com/{new_key}"}

    async def move_permanent(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.bodies.append(body)
        return web.json_response(
            {"success": True, "data": self._promoted(body["fileKey"], body.get("folder", "permanent"))}
        )

    async def move_multiple_permanent(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.bodies.append(body)
        folder = body.get("folder", "permanent")
        results = [self._promoted(key, folder) for key in body["fileKeys"]]
        return web.json_response({"success": True, "data": {"results": results}})

    async def delete(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.bodies.append(body)
        return web.json_response({"success": True, "message": "File deleted successfully"})

    async def info(self, request: web.Request) -> web.Response:
        key = request.path[len("/files/info/"):]
        return web.json_response(
            {"success": True, "data": {"fileKey": key, "publicUrl": f"https://cdn.example.com/{key}"}}
        )

    async def storage_put(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        self.put_paths.append(request.raw_path)
        self.puts.append(
            {
                "name": name,
                "content_type": request.headers.get("Content-Type"),
                "authorization": request.headers.get("Authorization"),
                "body": await request.read(),
            }
        )
        if name.startswith("forbidden"):
            return web.Response(status=403)
        return web.Response(status=200)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def serve(backend: FakeBackend) -> Callable[[Callable[[str], Awaitable[Any]]], Any]:
    """Run ``scenario(base_url)`` against the fake backend on a fresh event loop."""

    def run(scenario: Callable[[str], Awaitable[Any]]) -> Any:
        async def runner() -> Any:
            server = TestServer(backend.app())
            await server.start_server()
            try:
                return await scenario(f"http://{server.host}:{server.port}")
            finally:
                await server.close()

        return asyncio.run(runner())

    return run
