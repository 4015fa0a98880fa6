#!/usr/bin/env python3
"""Stream S3 Uploader Launcher.

Starts gunicorn serving the status API and the upload watchers.
"""

import os
import shutil
import signal
import subprocess
import sys
import time
import urllib.error
import urllib.request

from s3_uploader.config import get_settings

# ── Configuration ────────────────────────────────────────────
PROJECT_DIR = os.path.dirname(os.path.abspath(__file__))
VENV_DIR = os.path.join(PROJECT_DIR, "venv")
PID_FILE = os.path.join(PROJECT_DIR, ".gunicorn.pid")

gunicorn_proc: subprocess.Popen | None = None


def log(msg: str) -> None:
    print(f"[S3 Uploader] {msg}", flush=True)


def find_gunicorn() -> str | None:
    """Locate gunicorn in the project venv or on PATH."""
    venv_bin = os.path.join(VENV_DIR, "bin", "gunicorn")
    if os.path.isfile(venv_bin):
        return venv_bin
    return shutil.which("gunicorn")


def health_url(port: int) -> str:
    return f"http://127.0.0.1:{port}/health"


def wait_for_server(url: str, timeout: int = 15) -> bool:
    """Poll the health URL until the server responds or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            urllib.request.urlopen(url, timeout=1)
            return True
        except (urllib.error.URLError, OSError):
            pass
        # Check if gunicorn died
        if gunicorn_proc and gunicorn_proc.poll() is not None:
            return False
        time.sleep(0.5)
    return False


def shutdown(_signum: int = 0, _frame: object = None) -> None:
    """Gracefully stop gunicorn."""
    log("Shutting down...")
    if gunicorn_proc and gunicorn_proc.poll() is None:
        gunicorn_proc.terminate()
        try:
            gunicorn_proc.wait(timeout=10)
        except subprocess.TimeoutExpired:
            gunicorn_proc.kill()
    if os.path.exists(PID_FILE):
        os.remove(PID_FILE)
    log("Stopped.")
    sys.exit(0)


def main() -> None:
    global gunicorn_proc

    port = get_settings().port
    url = health_url(port)

    gunicorn_bin = find_gunicorn()
    if gunicorn_bin is None:
        log("gunicorn not found. Install it with:")
        log("  pip install gunicorn")
        sys.exit(1)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    # A single worker: the pending-recordings registry lives in process memory.
    log(f"Starting S3 Uploader (gunicorn on port {port})...")

    gunicorn_proc = subprocess.Popen(
        [
            gunicorn_bin,
            "--bind",
            f"0.0.0.0:{port}",
            "--workers",
            "1",
            "--threads",
            "4",
            "--pid",
            PID_FILE,
            "--access-logfile",
            "-",
            "--error-logfile",
            "-",
            "s3_uploader:create_app()",
        ],
        cwd=PROJECT_DIR,
    )

    log("Waiting for server...")
    if not wait_for_server(url):
        log("Server did not start. Check output above.")
        sys.exit(1)

    log(f"S3 Uploader is running, status at: {url}")

    try:
        gunicorn_proc.wait()
    except KeyboardInterrupt:
        shutdown()


if __name__ == "__main__":
    main()
