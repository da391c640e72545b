"""Development server for Revsite.

Serves the built site with live reload:
- Builds into a staging directory and swaps it in, so the served output
  is never half-written.
- Injects a reload script into HTML responses and pushes reload messages
  over a websocket after each rebuild.
- Watches the asset sources, content, data and config with watchdog.

The asset pipeline writes revisioned files into ``site/css`` and
``site/js``; those directories and the output are ignored by the watcher so
a rebuild does not trigger itself.

Key classes:
- SourceWatcher: Calls back on relevant source changes.
- DevServer: HTTP + websocket server with rebuild on change.
"""

from __future__ import annotations

import asyncio
import functools
import json
import os
import shutil
import threading
import time
from collections.abc import Callable
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import build_site
from .config import CONFIG_FILENAME, SiteConfig, load_config

RELOAD_SCRIPT_TEMPLATE = """
<script>
(() => {{
  const ws = new WebSocket('ws://' + location.hostname + ':{ws_port}');
  ws.onmessage = (event) => {{
    const data = JSON.parse(event.data || '{{}}');
    if (data.type === 'reload') location.reload();
  }};
}})();
</script>
"""


def inject_reload_script(html: str, script: str) -> str:
    if "</body>" in html:
        return html.replace("</body>", f"{script}</body>", 1)
    return html + script


class _ReloadHandler(SimpleHTTPRequestHandler):
    """Serves the output directory and injects the reload script into HTML."""

    reload_script = RELOAD_SCRIPT_TEMPLATE.format(ws_port=4001)

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        return self._send_html(Path(self.directory) / "404.html", 404)

    def _send_html(self, path: Path, status: int):
        if not path.is_file():
            self.send_error(404, "File not found")
            return None
        content = inject_reload_script(path.read_text(encoding="utf-8"), self.reload_script)
        encoded = content.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)
        return None

    def send_head(self):
        path = Path(self.translate_path(self.path))
        if path.is_dir():
            path = path / "index.html"
        if not path.exists():
            return self._send_html(Path(self.directory) / "404.html", 404)
        if path.suffix == ".html":
            return self._send_html(path, 200)
        return super().send_head()


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: SourceWatcher):
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event):
        if event.is_directory:
            return
        if self.watcher.is_relevant(Path(os.fsdecode(event.src_path))):
            self.watcher.callback()


class SourceWatcher:
    """Watches project sources and invokes a callback on relevant changes.

    Attributes:
        config: Site configuration.
        callback: Called with no arguments after a relevant change.
        ignored: Directories whose changes are ignored.
    """

    def __init__(
        self,
        config: SiteConfig,
        callback: Callable[[], None],
        folders: list[Path] | None = None,
        ignored: list[Path] | None = None,
    ):
        root = config.project_root
        self.config = config
        self.callback = callback
        self.folders = folders or [
            root / config.css_dir,
            root / config.js_dir,
            config.site_path,
            config.data_path,
        ]
        self.ignored = list(config.category_dirs().values()) + [config.output_path]
        if ignored:
            self.ignored.extend(ignored)
        self._observer: Observer | None = None

    def is_relevant(self, path: Path) -> bool:
        if "node_modules" in path.parts:
            return False
        for ignored in self.ignored:
            if path.is_relative_to(ignored):
                return False
        if path.parent == self.config.project_root:
            return path.name == CONFIG_FILENAME or path.name.startswith("tailwind.config")
        return any(path.is_relative_to(folder) for folder in self.folders)

    def start(self) -> None:
        handler = _ChangeHandler(self)
        observer = Observer()
        for folder in self.folders:
            if folder.exists():
                observer.schedule(handler, str(folder), recursive=True)
        observer.schedule(handler, str(self.config.project_root), recursive=False)
        observer.start()
        self._observer = observer

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None


class DevServer:
    """Development server with live reload.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration.
        output_dir: Directory being served.
        http_port: HTTP port.
        ws_port: Websocket port.
    """

    def __init__(
        self, project_root: Path, http_port: int | None = None, ws_port: int | None = None
    ):
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = self.config.output_path
        self._staging_dir = self.output_dir.with_name(self.output_dir.name + ".staging")
        self.http_port = int(http_port or self.config.port)
        if ws_port is not None:
            self.ws_port = ws_port
        elif http_port is None and self.config.ws_port is not None:
            self.ws_port = self.config.ws_port
        else:
            self.ws_port = self.http_port + 1
        self._reload_script = RELOAD_SCRIPT_TEMPLATE.format(ws_port=self.ws_port)
        self._root_url = f"http://localhost:{self.http_port}"
        self._watcher: SourceWatcher | None = None
        self._ws_clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._rebuilding = False
        self._last_rebuild_at = 0.0
        self._debounce_seconds = 0.05
        self._post_build_delay = 0.05

    def start(self, include_drafts: bool = False) -> None:  # pragma: no cover - integration path
        self._build(include_drafts)
        threading.Thread(target=self._start_http, daemon=True).start()
        threading.Thread(target=self._start_ws, daemon=True).start()
        self._watcher = SourceWatcher(
            self.config,
            lambda: self.rebuild(include_drafts),
            ignored=[self._staging_dir],
        )
        self._watcher.start()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._watcher:
            self._watcher.stop()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def _build(self, include_drafts: bool) -> None:
        staging = self._staging_dir
        if staging.exists():
            shutil.rmtree(staging)
        build_site(
            self.project_root,
            include_drafts=include_drafts,
            root_url=self._root_url,
            output_dir_override=staging,
            config=load_config(self.project_root),
        )
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        os.replace(staging, self.output_dir)

    def rebuild(self, include_drafts: bool) -> None:
        now = time.time()
        if self._rebuilding or (now - self._last_rebuild_at) < self._debounce_seconds:
            return
        self._rebuilding = True
        try:
            print("Change detected; rebuilding...")
            try:
                self._build(include_drafts)
            except Exception as exc:
                print(f"Rebuild failed: {exc}")
                return
            if self._post_build_delay:
                time.sleep(self._post_build_delay)
            self._broadcast_reload()
        finally:
            self._rebuilding = False
            self._last_rebuild_at = time.time()

    def _start_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_ReloadHandlerWithPort",
            (_ReloadHandler,),
            {"reload_script": self._reload_script},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        print(f"Serving {self.output_dir} at http://localhost:{self.http_port}")
        httpd.serve_forever()

    def _start_ws(self) -> None:  # pragma: no cover - integration path
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_ws_server())
        except OSError as exc:
            print(f"WebSocket server failed to start (port {self.ws_port}): {exc}")

    async def _run_ws_server(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._ws_handler, "0.0.0.0", self.ws_port):
            await asyncio.Future()

    async def _ws_handler(self, websocket):
        self._ws_clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._ws_clients.discard(websocket)

    def _broadcast_reload(self) -> None:
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(message), self._loop)

    async def _async_broadcast(self, message: str) -> None:
        stale = set()
        for ws in self._ws_clients:
            try:
                await ws.send(message)
            except websockets.ConnectionClosed:
                stale.add(ws)
        self._ws_clients -= stale
