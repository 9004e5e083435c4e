"""Local HTTP server serving a scripted playlist response."""

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, HTTPServer


PLAYLIST = {
    "videos": [
        {
            "title": "Android Jetpack: LiveData",
            "description": "LiveData is an observable data holder class.",
            "url": "https://www.youtube.com/watch?v=OMcDk2_4LSk",
            "updated": "2018-06-07T17:09:43+00:00",
            "thumbnail": "https://i4.ytimg.com/vi/OMcDk2_4LSk/hqdefault.jpg",
            "closedCaptions": "",
        },
        {
            "title": "Android Jetpack: Room",
            "description": "Room is a SQLite object mapping library.",
            "url": "https://www.youtube.com/watch?v=SKWh4ckvFPM",
            "updated": "2018-06-07T17:09:43+00:00",
            "thumbnail": "https://i4.ytimg.com/vi/SKWh4ckvFPM/hqdefault.jpg",
            "closedCaptions": "",
        },
    ]
}


def get_server_url(server: HTTPServer, path: str = "/devbytes") -> str:
    """Get the URL for a test server.

    Args:
        server: The HTTP server instance.
        path: The URL path.

    Returns:
        Complete URL for the server.
    """
    host, port = server.server_address[0], server.server_address[1]
    # Ensure host is a string (may be bytes in some socket scenarios)
    if isinstance(host, bytes):
        host = host.decode("utf-8")
    return f"http://{host}:{port}{path}"


class PlaylistHandler(BaseHTTPRequestHandler):
    """HTTP handler serving a scripted response."""

    # Class-level state for test responses
    status: int = 200
    body: bytes = json.dumps(PLAYLIST).encode("utf-8")
    delay_seconds: float = 0.0
    last_headers: dict[str, str] = {}  # noqa: RUF012

    @classmethod
    def reset(cls) -> None:
        """Restore the default playlist response."""
        cls.status = 200
        cls.body = json.dumps(PLAYLIST).encode("utf-8")
        cls.delay_seconds = 0.0
        cls.last_headers = {}

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        """Suppress log messages during tests."""

    def do_GET(self) -> None:  # noqa: N802
        """Serve the scripted status and body."""
        PlaylistHandler.last_headers = dict(self.headers.items())
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        self.send_response(self.status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(self.body)))
        self.end_headers()
        self.wfile.write(self.body)


def start_playlist_server() -> HTTPServer:
    """Start a playlist server on a free local port in a daemon thread."""
    PlaylistHandler.reset()
    server = HTTPServer(("127.0.0.1", 0), PlaylistHandler)
    thread = threading.Thread(target=server.serve_forever)
    thread.daemon = True
    thread.start()
    return server


def unused_url() -> str:
    """URL of a local port with nothing listening."""
    server = HTTPServer(("127.0.0.1", 0), PlaylistHandler)
    url = get_server_url(server)
    server.server_close()
    return url
