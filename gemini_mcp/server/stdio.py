import json
import logging
import sys
import threading
from typing import Any, Dict, Iterator, Optional, TextIO

from gemini_mcp.infrastructure.logging.logger import log_event, logger
from gemini_mcp.server.dispatcher import Dispatcher


class StdioServer:
    """按行读取 stdin、逐条处理并把响应写入 stdout。

    处理是同步的：上一行的响应写出之后才读取下一行，因此响应顺序与输入顺序一致。
    stdout 只用于协议输出，日志全部走 stderr。
    """

    def __init__(self, dispatcher: Dispatcher, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None):
        self._dispatcher = dispatcher
        self._stdin = stdin if stdin is not None else sys.stdin
        self._stdout = stdout if stdout is not None else sys.stdout
        self.transport_closed = threading.Event()
        self.write_lock = threading.Lock()

    def send(self, message: Dict[str, Any]) -> None:
        """序列化并写出一条 JSON-RPC 消息。"""
        if self.transport_closed.is_set():
            return
        serialized = json.dumps(message, ensure_ascii=False, separators=(",", ":"))
        try:
            with self.write_lock:
                if self.transport_closed.is_set():
                    return
                self._stdout.write(serialized + "\n")
                self._stdout.flush()
        except (BrokenPipeError, OSError) as exc:
            self.transport_closed.set()
            log_event(logging.WARNING, "Stdio transport closed while sending", {}, error=str(exc))

    def serve_forever(self) -> int:
        """一直处理到输入 EOF 或输出管道关闭，返回写出的响应数。"""
        sent = 0
        log_event(logging.INFO, "Listening on stdio", {})
        for line in self._read_lines():
            if self.transport_closed.is_set():
                break
            try:
                response = self._dispatcher.handle_line(line)
            except Exception:
                logger.exception("Unexpected error during dispatch")
                continue
            if response is not None:
                self.send(response)
                sent += 1
        self.transport_closed.set()
        log_event(logging.INFO, "Stdio input closed", {}, responses=sent)
        return sent

    def _read_lines(self) -> Iterator[str]:
        """逐行读取输入；有底层字节流时按行解码，非法 UTF-8 字节替换为 U+FFFD。"""
        raw = getattr(self._stdin, "buffer", None)
        if raw is not None:
            for chunk in raw:
                yield chunk.decode("utf-8", errors="replace")
            return
        while True:
            try:
                line = self._stdin.readline()
            except UnicodeDecodeError as exc:
                log_event(logging.ERROR, "Failed to decode input line", {}, error=str(exc))
                continue
            if not line:
                return
            yield line

    def stop(self) -> None:
        self.transport_closed.set()
