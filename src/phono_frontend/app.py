import os
from pathlib import PurePath
from typing import Any

import requests
from flask import Flask, Response, render_template_string, request

from phono.encode_options import BitRateMode, ChannelMode, enum_values
from phono.formats import build_default_registry

app = Flask(__name__)

registry = build_default_registry()

FILE_KEY = "input-file"
FORMAT_KEY = "format"
DEFAULT_FILENAME = "result_1"


INDEX_TEMPLATE = """
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <title>phono</title>
  </head>
  <body>
    <h1>phono audio converter</h1>
    <form action="/encode" method="post" enctype="multipart/form-data">
      <p>
        <label for="input-file">Input file ({{ input_extensions|join(", ") }}):</label>
        <input id="input-file" name="input-file" type="file" required>
      </p>
      <p>
        <label for="format">Output format:</label>
        <select id="format" name="format" required>
          {% for fmt in formats %}
          <option value="{{ fmt.name }}">{{ fmt.name }}</option>
          {% endfor %}
        </select>
      </p>
      <fieldset>
        <legend>WAV / FLAC</legend>
        <label for="bitDepth">Bit depth:</label>
        <select id="bitDepth" name="bitDepth">
          {% for value in bit_depths %}
          <option value="{{ value }}" {% if value == 16 %}selected{% endif %}>{{ value }}</option>
          {% endfor %}
        </select>
      </fieldset>
      <fieldset>
        <legend>MP3</legend>
        <p>
          <label for="bitRateMode">Bit rate mode:</label>
          <select id="bitRateMode" name="bitRateMode">
            {% for value in bit_rate_modes %}
            <option value="{{ value }}" {% if value == default_bit_rate_mode %}selected{% endif %}>{{ value }}</option>
            {% endfor %}
          </select>
        </p>
        <p>
          <label for="vbrQuality">VBR quality (0-9, VBR only):</label>
          <input id="vbrQuality" name="vbrQuality" type="number" min="0" max="9" value="4">
        </p>
        <p>
          <label for="bitRate">Bit rate in kbps (CBR/ABR only):</label>
          <input id="bitRate" name="bitRate" type="number" min="8" max="320" value="192">
        </p>
        <p>
          <label for="channelMode">Channel mode:</label>
          <select id="channelMode" name="channelMode">
            {% for mode in channel_modes %}
            <option value="{{ mode.value }}" {% if mode.value == 2 %}selected{% endif %}>{{ mode.name.lower() }}</option>
            {% endfor %}
          </select>
        </p>
        <p>
          <label for="useQuality">Set encoder quality:</label>
          <input id="useQuality" name="useQuality" type="checkbox" value="true">
          <label for="quality">Quality (0-9):</label>
          <input id="quality" name="quality" type="number" min="0" max="9" value="5">
        </p>
      </fieldset>
      <button type="submit">Convert</button>
    </form>
    <p><a href="/health">Check health</a></p>
  </body>
</html>
"""


HEALTH_TEMPLATE = """
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <title>Health</title>
  </head>
  <body>
    <h1>API health status: {{ status }}</h1>
    <pre>{{ payload }}</pre>
    <p><a href="/">Back</a></p>
  </body>
</html>
"""


ERROR_TEMPLATE = """
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <title>Conversion Error</title>
  </head>
  <body>
    <h1>Conversion failed (status {{ status }})</h1>
    <pre>{{ payload }}</pre>
    <p><a href="/">Back</a></p>
  </body>
</html>
"""


def _api_base_url() -> str:
    return os.getenv("PHONO_API_BASE_URL", "http://127.0.0.1:8080").rstrip("/")


def _frontend_host() -> str:
    return os.getenv("PHONO_FRONTEND_HOST", "0.0.0.0")


def _frontend_port() -> int:
    return int(os.getenv("PHONO_FRONTEND_PORT", "5000"))


@app.get("/")
def index() -> str:
    bit_depths = sorted(
        {
            choice
            for fmt in registry.formats()
            if "bitDepth" in fmt.domain
            for choice in fmt.domain["bitDepth"].choices or ()
        }
    )
    return render_template_string(
        INDEX_TEMPLATE,
        formats=registry.formats(),
        input_extensions=registry.input_extensions(),
        bit_depths=bit_depths,
        bit_rate_modes=enum_values(BitRateMode),
        default_bit_rate_mode=BitRateMode.VBR.value,
        channel_modes=list(ChannelMode),
    )


def _error(status: int, payload: Any) -> tuple[str, int]:
    return render_template_string(ERROR_TEMPLATE, status=status, payload=payload), status


@app.post("/encode")
def encode() -> Response | tuple[str, int]:
    upload = request.files.get(FILE_KEY)
    if upload is None or not upload.filename:
        return _error(400, {"error": f"An '{FILE_KEY}' file is required."})

    input_extension = PurePath(upload.filename).suffix.lstrip(".")
    if not input_extension:
        return _error(415, {"error": f"Cannot tell the input format of {upload.filename!r}."})

    data = {key: value for key, value in request.form.items() if value.strip()}
    files = {FILE_KEY: (upload.filename, upload.stream, upload.mimetype)}

    try:
        upstream = requests.post(
            f"{_api_base_url()}/encode/{input_extension}",
            data=data,
            files=files,
            timeout=120,
        )
    except requests.RequestException as exc:
        return _error(502, {"error": "Failed to contact API", "detail": str(exc)})

    if upstream.ok:
        content_type = upstream.headers.get("content-type", "application/octet-stream")
        filename = _content_disposition_filename(upstream.headers.get("content-disposition"))
        return Response(
            upstream.content,
            status=upstream.status_code,
            content_type=content_type,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    payload: dict[str, Any]
    try:
        payload = upstream.json()
    except ValueError:
        payload = {"error": "Upstream returned non-JSON error", "body": upstream.text}
    return _error(upstream.status_code, payload)


@app.get("/health")
def health() -> tuple[str, int]:
    try:
        upstream = requests.get(f"{_api_base_url()}/health", timeout=30)
    except requests.RequestException as exc:
        payload = {"error": "Failed to contact API", "detail": str(exc)}
        return render_template_string(HEALTH_TEMPLATE, status="unavailable", payload=payload), 502

    try:
        payload = upstream.json()
    except ValueError:
        payload = {"error": "Upstream returned non-JSON payload", "body": upstream.text}

    status = payload.get("status", "unknown") if isinstance(payload, dict) else "unknown"
    return render_template_string(HEALTH_TEMPLATE, status=status, payload=payload), upstream.status_code


def _content_disposition_filename(content_disposition: str | None) -> str:
    if not content_disposition:
        return DEFAULT_FILENAME

    for part in (part.strip() for part in content_disposition.split(";")):
        if part.startswith("filename="):
            return part.split("=", 1)[1].strip('"') or DEFAULT_FILENAME
    return DEFAULT_FILENAME


def main() -> None:
    app.run(host=_frontend_host(), port=_frontend_port(), debug=True)


if __name__ == "__main__":
    main()
