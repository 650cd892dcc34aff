from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import os
import re
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from javatyper.services.extractor.service import match_braces

from .schema import RunResult

logger = logging.getLogger("javatyper.judge")

NO_OUTPUT = "No output"

_PACKAGE_LINE = re.compile(r"^\s*package\s+[^;]+;\s*", re.MULTILINE)
_PUBLIC_CLASS = re.compile(r"(^|\s)public\s+class\s+")
_MAIN_METHOD = re.compile(r"\bstatic\s+void\s+main\s*\(\s*String\s*(?:\[\s*\]|\.\.\.)\s*\w+\s*\)")
_CLASS_OPEN = re.compile(r"\bclass\s+([A-Za-z_$][\w$]*)[^{]*\{")
_MAIN_CLASS = re.compile(r"\bclass\s+Main\b")

_LAUNCHER = """public class Main {{
  public static void main(String[] args) {{
    {target}.main(args);
  }}
}}
"""
_EMPTY_MAIN = """public class Main {
  public static void main(String[] args) { }
}
"""


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name, default)


def prepare_java_source(code: str) -> str:
    """Rewrite a snippet so it compiles as ``Main.java``.

    Package declarations are dropped and ``public class`` is demoted so the
    only public type is a ``Main`` launcher that delegates to whichever class
    declares ``main(String[])``.
    """
    src = code.replace("\r\n", "\n").replace("\r", "\n").lstrip("\ufeff")
    src = _PACKAGE_LINE.sub("", src)
    src = _PUBLIC_CLASS.sub(lambda match: f"{match.group(1)}class ", src)

    main_match = _MAIN_METHOD.search(src)
    if main_match is None:
        return f"{src.rstrip()}\n\n{_EMPTY_MAIN}"
    owner = _enclosing_class(src, main_match.start())
    if owner is None or owner == "Main" or _MAIN_CLASS.search(src):
        return src
    return f"{src.rstrip()}\n\n{_LAUNCHER.format(target=owner)}"


def _enclosing_class(src: str, position: int) -> Optional[str]:
    # Innermost class whose body contains the position; an unclosed body runs to the end.
    pairs = match_braces(src)
    owner = None
    for header in _CLASS_OPEN.finditer(src, 0, position):
        if pairs.get(header.end() - 1, len(src)) > position:
            owner = header.group(1)
    return owner


def combine_output(stdout: str, compile_output: str, stderr: str, message: str) -> str:
    for value in (stdout, compile_output, stderr, message):
        if value and value.strip():
            return value.strip()
    return NO_OUTPUT


def _encode(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def _decode(value: Any) -> str:
    if not value:
        return ""
    text = str(value)
    try:
        return base64.b64decode("".join(text.split()), validate=True).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return text


class JudgeService:
    """Adapter for compiling and running Java snippets via Judge0 or a local JDK."""

    def __init__(
        self,
        *,
        host: Optional[str] = None,
        api_key: Optional[str] = None,
        language_id: Optional[int] = None,
        use_mock: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (host or _env("JUDGE0_HOST") or "https://ce.judge0.com").rstrip("/")
        self.api_key = api_key or _env("JUDGE0_KEY")
        self.language_id = language_id or int(_env("JUDGE0_LANG_JAVA", "62"))
        self.use_mock = bool(use_mock if use_mock is not None else _env("USE_JUDGE0_MOCK", "false").lower() == "true")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        parsed = urlparse(self.base_url)
        self._host_header = parsed.netloc

    async def start(self) -> None:
        if self.use_mock or self._client is not None:
            return
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-RapidAPI-Host"] = self._host_header
            headers["X-RapidAPI-Key"] = self.api_key
        timeout = httpx.Timeout(25.0, connect=10.0)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def run(self, code: str, stdin: str = "") -> RunResult:
        prepared = prepare_java_source(code)
        if self.use_mock:
            result = await asyncio.to_thread(self._run_local, prepared, stdin)
        else:
            result = await self._run_remote(prepared, stdin)
        return result.model_copy(update={"normalized": prepared})

    async def _run_remote(self, source: str, stdin: str) -> RunResult:
        if self._client is None:
            await self.start()
        assert self._client is not None
        payload = {
            "language_id": self.language_id,
            "source_code": _encode(source),
            "stdin": _encode(stdin or ""),
            "compiler_options": None,
            "command_line_arguments": None,
        }
        try:
            response = await self._client.post(
                "/submissions",
                params={"base64_encoded": "true", "wait": "true"},
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Judge0 request failed: %s", exc)
            return _failed(str(exc) or exc.__class__.__name__)
        if not isinstance(data, dict):
            return _failed("malformed response")
        return _from_judge0(data)

    # Local executor ----------------------------------------------------
    def _run_local(self, source: str, stdin: str, timeout: float = 10.0) -> RunResult:
        with tempfile.TemporaryDirectory(prefix="javatyper-") as workdir:
            Path(workdir, "Main.java").write_text(source, encoding="utf-8")
            try:
                compiled = subprocess.run(
                    ["javac", "Main.java"],
                    cwd=workdir,
                    capture_output=True,
                    timeout=timeout,
                )
                if compiled.returncode != 0:
                    compile_output = (compiled.stderr or compiled.stdout).decode("utf-8", errors="replace")
                    return _local_result("Compilation Error", compile_output=compile_output)
                proc = subprocess.run(
                    ["java", "-cp", workdir, "Main"],
                    input=(stdin or "").encode("utf-8"),
                    capture_output=True,
                    timeout=timeout,
                )
            except FileNotFoundError:
                return _local_result("error", message="Request failed: JDK (javac/java) not available")
            except OSError as exc:
                logger.warning("Local Java run failed: %s", exc)
                return _local_result("error", message=f"Request failed: {exc}")
            except subprocess.TimeoutExpired:  # pragma: no cover - timeout path
                return _local_result("Time Limit Exceeded", message=f"Timeout after {timeout}s")
        stdout = proc.stdout.decode("utf-8", errors="replace")
        stderr = proc.stderr.decode("utf-8", errors="replace")
        status = "Accepted" if proc.returncode == 0 else "Runtime Error (NZEC)"
        return _local_result(status, stdout=stdout, stderr=stderr)


def _from_judge0(data: Dict[str, Any]) -> RunResult:
    stdout = _decode(data.get("stdout"))
    stderr = _decode(data.get("stderr"))
    compile_output = _decode(data.get("compile_output"))
    message = _decode(data.get("message"))
    status_info = data.get("status") or {}
    status = (status_info.get("description") or "") if isinstance(status_info, dict) else str(status_info)
    return RunResult(
        status=status,
        stdout=stdout,
        stderr=stderr,
        compile_output=compile_output,
        message=message,
        combined=combine_output(stdout, compile_output, stderr, message),
    )


def _local_result(
    status: str,
    *,
    stdout: str = "",
    stderr: str = "",
    compile_output: str = "",
    message: str = "",
) -> RunResult:
    return RunResult(
        status=status,
        stdout=stdout,
        stderr=stderr,
        compile_output=compile_output,
        message=message,
        combined=combine_output(stdout, compile_output, stderr, message),
        mock=True,
    )


def _failed(reason: str) -> RunResult:
    message = f"Request failed: {reason}"
    return RunResult(status="error", message=message, combined=message)
