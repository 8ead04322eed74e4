"""
开发模式：监控源码与配置变更，自动重启 Page Store 后端。
用法: python scripts/dev_server.py [port]
"""

import os
import signal
import subprocess
import sys
import time
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

PROJECT_ROOT = Path(__file__).resolve().parent.parent

WATCH_DIRS = [
    PROJECT_ROOT / "snippet_builder",
    PROJECT_ROOT / "config",
]
WATCH_EXTENSIONS = {".py", ".yaml", ".yml"}

# 重启冷却时间（秒）
COOLDOWN = 1.5


class BackendProcess:
    """后端子进程：main.py <port>。"""

    def __init__(self, port: int):
        self.port = port
        self.process: subprocess.Popen | None = None

    def start(self):
        env = os.environ.copy()
        env["PYTHONPATH"] = str(PROJECT_ROOT)
        env.setdefault("SNIPPET_BUILDER_ROOT", str(PROJECT_ROOT))
        self.process = subprocess.Popen(
            [sys.executable, "main.py", str(self.port)],
            cwd=PROJECT_ROOT,
            env=env,
        )
        print(f"✅ 后端已启动 (PID: {self.process.pid}, port={self.port})")

    def stop(self):
        if self.process is None or self.process.poll() is not None:
            return
        # SIGTERM 让 uvicorn 执行 lifespan 关闭逻辑（关闭 TinyDB）
        self.process.send_signal(signal.SIGTERM)
        try:
            self.process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            print("⚠️  强制终止...")
            self.process.kill()
            self.process.wait()

    def restart(self):
        self.stop()
        self.start()


class ReloadHandler(FileSystemEventHandler):
    def __init__(self, backend: BackendProcess):
        self.backend = backend
        self._last_trigger = 0.0

    def on_any_event(self, event: FileSystemEvent):
        if event.is_directory or event.event_type not in ("modified", "created", "moved"):
            return
        path = Path(str(event.src_path))
        if path.suffix not in WATCH_EXTENSIONS or "__pycache__" in path.parts:
            return

        now = time.monotonic()
        if now - self._last_trigger < COOLDOWN:
            return
        self._last_trigger = now

        print(f"\n🔄 检测到变更: {path.relative_to(PROJECT_ROOT)}")
        self.backend.restart()


def main():
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 10000

    backend = BackendProcess(port)
    backend.start()

    observer = Observer()
    handler = ReloadHandler(backend)
    for watch_dir in WATCH_DIRS:
        if watch_dir.is_dir():
            observer.schedule(handler, str(watch_dir), recursive=True)
            print(f"👁️  监控目录: {watch_dir.relative_to(PROJECT_ROOT)}/")
    observer.start()

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\n👋 正在退出...")
    finally:
        observer.stop()
        backend.stop()
        observer.join()


if __name__ == "__main__":
    main()
