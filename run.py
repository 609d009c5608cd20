"""Launch the chat gateway (FastAPI) under uvicorn."""
import os
import subprocess
import sys
from pathlib import Path


def main():
    root = Path(__file__).parent

    # DOCKER=1 binds all interfaces and disables autoreload
    is_docker = os.environ.get("DOCKER", "0") == "1"
    host = "0.0.0.0" if is_docker else "127.0.0.1"
    port = os.environ.get("PORT", "") or "8000"

    print("=" * 60)
    print("  Chat gateway -- run.py starting")
    print(f"  DOCKER={os.environ.get('DOCKER', '(not set)')}")
    print(f"  Gateway (FastAPI) -> http://{host}:{port}")
    print("=" * 60)

    cmd = [
        sys.executable, "-m", "uvicorn", "backend.main:app",
        "--host", host, "--port", port,
    ]
    if not is_docker:
        cmd.append("--reload")

    gateway = subprocess.Popen(cmd, cwd=str(root))
    try:
        gateway.wait()
    except KeyboardInterrupt:
        print("\nShutting down...")
        gateway.terminate()
        gateway.wait()


if __name__ == "__main__":
    main()
