"""Flask entrypoint that exposes the invisible-text codec as a JSON API."""

import json
import os
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request

from veiltext import service
from veiltext.errors import VeilTextError
from veiltext.textio import read_text_auto

app = Flask(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        app.logger.warning("Ignoring %s=%r, expected an integer", name, raw)
        return default


MAX_UPLOAD_BYTES = _env_int("VEILTEXT_MAX_UPLOAD_BYTES", 8 * 1024 * 1024)
DECODE_LIMIT = _env_int("VEILTEXT_DECODE_LIMIT", 50)
DECODE_WORKERS = _env_int("VEILTEXT_DECODE_WORKERS", 1)

ERROR_STATUS = {
    "UnsupportedScheme": 400,
    "MalformedAssignment": 400,
    "InsufficientCarrier": 422,
    "UnencodableMessage": 422,
    "NoInvisibleCharactersFound": 404,
    "NoSchemeMatched": 404,
}
INTERNAL_ERROR = "InternalError"


class RequestError(ValueError):
    """Malformed request arguments."""


def _error(exc: Exception, prefix: str = ""):
    if isinstance(exc, VeilTextError):
        body = exc.to_dict()
        status = ERROR_STATUS.get(exc.kind, 400)
    else:
        body = {"error": str(exc), "kind": "InvalidRequest"}
        status = 400
    if prefix:
        body["error"] = f"{prefix}: {body['error']}"
    return jsonify(body), status


def _internal_error(message: str):
    return jsonify({"error": message, "kind": INTERNAL_ERROR}), 500


def _request_data() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _read_upload(field: str) -> Optional[str]:
    upload = request.files.get(field)
    if upload is None:
        return None
    try:
        raw = upload.read()
    except Exception as exc:
        raise RequestError(f"Failed to read uploaded file: {str(exc)}") from exc
    if len(raw) > MAX_UPLOAD_BYTES:
        raise RequestError(
            f"Uploaded file too large. Maximum size is {MAX_UPLOAD_BYTES // (1024 * 1024)}MB"
        )
    return read_text_auto(raw)


def _text_input(data: Dict[str, Any]) -> str:
    uploaded = _read_upload("file")
    if uploaded is not None:
        return uploaded
    text = data.get("text")
    if text is None:
        raise RequestError("Provide 'text' or upload a 'file'")
    if not isinstance(text, str):
        raise RequestError("'text' must be a string")
    return text


def _scheme_list(value: Any) -> Optional[List[str]]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return value
    raise RequestError("'schemes' must be a list of scheme ids or a comma separated string")


def _limit(value: Any) -> int:
    if value is None or value == "":
        return DECODE_LIMIT
    try:
        limit = int(value)
    except (TypeError, ValueError) as exc:
        raise RequestError(f"'limit' must be an integer, got {value!r}") from exc
    if limit < 1:
        raise RequestError("'limit' must be at least 1")
    return limit


def _assignment(value: Any) -> Any:
    if isinstance(value, str) and value.strip().startswith("{"):
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise RequestError(f"Invalid JSON in assignment: {str(exc)}") from exc
    return value


@app.get("/")
def index():
    return jsonify(
        {
            "service": "veiltext",
            "endpoints": sorted(
                str(rule) for rule in app.url_map.iter_rules() if str(rule).startswith("/api/")
            ),
        }
    )


@app.get("/api/characters")
def api_characters():
    try:
        characters = service.list_characters()
        return jsonify({"count": len(characters), "characters": characters})
    except Exception as exc:
        app.logger.exception("Listing characters failed")
        return _internal_error(f"Failed to list characters: {str(exc)}")


@app.get("/api/schemes")
def api_schemes():
    try:
        schemes = service.list_schemes()
        return jsonify({"count": len(schemes), "schemes": schemes})
    except Exception as exc:
        app.logger.exception("Listing schemes failed")
        return _internal_error(f"Failed to list schemes: {str(exc)}")


@app.post("/api/analyze")
def api_analyze():
    try:
        text = _text_input(_request_data())
        return jsonify(service.analyze(text))
    except ValueError as exc:
        return _error(exc, "Analysis failed")
    except Exception as exc:
        app.logger.exception("Unexpected error during analysis")
        return _internal_error(f"Unexpected error during analysis: {str(exc)}")


@app.post("/api/decode")
def api_decode():
    try:
        data = _request_data()
        text = _text_input(data)
        schemes = _scheme_list(data.get("schemes"))
        limit = _limit(data.get("limit"))
        result = service.decode(text, schemes=schemes, limit=limit, workers=DECODE_WORKERS)
        return jsonify(result)
    except ValueError as exc:
        return _error(exc, "Decoding failed")
    except Exception as exc:
        app.logger.exception("Unexpected error during decoding")
        return _internal_error(f"Unexpected error during decoding: {str(exc)}")


@app.post("/api/encode")
def api_encode():
    try:
        data = _request_data()
        if "message" not in data:
            raise RequestError("'message' is required")
        message = service.parse_message(
            data.get("message") or "", data.get("message_format") or "text"
        )
        scheme_id = data.get("scheme")
        if not scheme_id:
            raise RequestError("'scheme' is required")

        carrier_text = _read_upload("carrier_file")
        if carrier_text is None:
            carrier_text = data.get("carrier_text") or None

        options = {
            "assignment": _assignment(data.get("assignment")),
            "carrier_text": carrier_text,
            "position": data.get("position") or "middle",
        }
        return jsonify(service.encode(message, scheme_id, options))
    except ValueError as exc:
        return _error(exc, "Encoding failed")
    except Exception as exc:
        app.logger.exception("Unexpected error during encoding")
        return _internal_error(f"Unexpected error during encoding: {str(exc)}")


@app.post("/api/dump")
def api_dump():
    try:
        entries = service.dump_raw(_text_input(_request_data()))
        return jsonify({"count": len(entries), "entries": entries})
    except ValueError as exc:
        return _error(exc, "Dump failed")
    except Exception as exc:
        app.logger.exception("Unexpected error during dump")
        return _internal_error(f"Unexpected error during dump: {str(exc)}")


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
