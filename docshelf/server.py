import logging
import os
import tempfile
from pathlib import Path, PurePosixPath

import markdown
from flask import Blueprint, Flask, current_app, jsonify, request, send_file
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge
from werkzeug.utils import secure_filename

from .config import Config, load_config
from .errors import DocShelfError, InvalidRequest
from .library import Library

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api")

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists"]


def _library() -> Library:
    return current_app.extensions["docshelf"]


def render_markdown(text: str) -> str:
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return body


def _field(body: dict, key: str) -> str:
    value = body.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidRequest(f"{key} must be a string")
    return value


@api.route("/files")
def api_files():
    return jsonify(_library().scan())


@api.route("/file-content")
def api_file_content():
    filepath = request.args.get("filepath", "")
    if not filepath:
        raise InvalidRequest("filepath parameter is required")
    result = _library().content(filepath)
    if not result.is_text:
        return send_file(result.path, mimetype=result.mimetype)
    body = {"content": result.content, "type": "text"}
    if request.args.get("render") == "html" and result.path.suffix.lower() == ".md":
        body["html"] = render_markdown(result.content)
    return jsonify(body)


@api.route("/upload", methods=["POST"])
def api_upload():
    lib = _library()
    if "file" not in request.files:
        raise InvalidRequest("No file uploaded")
    f = request.files["file"]
    if not f.filename:
        raise InvalidRequest("No file uploaded")
    filename = secure_filename(f.filename)
    if not filename:
        raise InvalidRequest("Invalid filename")
    ext = PurePosixPath(filename).suffix.lower()
    if ext not in lib.config.allowed_upload_extensions:
        raise InvalidRequest("Only PDF, HTML, and image files are allowed")

    target_folder = request.form.get("targetFolder", "").strip() or None
    # Received into a hidden file under the root so the final move is a rename.
    fd, tmp = tempfile.mkstemp(prefix=".upload-", dir=lib.root)
    os.close(fd)
    try:
        f.save(tmp)
    except OSError:
        os.unlink(tmp)
        raise
    rel = lib.place_upload(Path(tmp), filename, target_folder)
    return jsonify({"message": "File uploaded successfully", "filename": filename, "path": rel})


@api.route("/delete", methods=["DELETE"])
def api_delete():
    body = _json_body()
    filepath = _field(body, "filepath")
    password = _field(body, "password")
    if not filepath or not password:
        raise InvalidRequest("filepath and password are required")
    rel = _library().delete(filepath, password)
    return jsonify({"message": f"'{PurePosixPath(rel).name}' deleted successfully"})


@api.route("/create-folder", methods=["POST"])
def api_create_folder():
    body = _json_body()
    folder_name = _field(body, "folderPath")
    parent = _field(body, "parentFolder") or None
    if not folder_name.strip():
        raise InvalidRequest("Folder name is required")
    rel = _library().create_folder(folder_name, parent)
    name = PurePosixPath(rel).name
    return jsonify({"message": f"Folder '{name}' created successfully", "folderName": name, "path": rel})


@api.route("/folder-contents")
def api_folder_contents():
    folder_path = request.args.get("folderPath", "")
    if not folder_path:
        raise InvalidRequest("folderPath parameter is required")
    return jsonify(_library().folder_contents(folder_path))


@api.route("/move-folder-contents", methods=["POST"])
def api_move_folder_contents():
    body = _json_body()
    source = _field(body, "sourceFolderPath")
    destination = _field(body, "destinationFolderPath") or None
    password = _field(body, "password")
    if not source or not password:
        raise InvalidRequest("sourceFolderPath and password are required")
    moved, label = _library().move_folder_contents(source, destination, password)
    return jsonify({
        "message": f"Moved {moved} item(s) and deleted folder '{PurePosixPath(source).name}'",
        "movedCount": moved,
        "destination": label,
    })


@api.route("/folders")
def api_folders():
    return jsonify(_library().folders())


def _handle_docshelf_error(e: DocShelfError):
    return jsonify({"error": e.message}), e.status


def _handle_too_large(e: RequestEntityTooLarge):
    limit_mb = current_app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
    return jsonify({"error": f"File size must be less than {limit_mb}MB"}), 413


def _handle_http_error(e: HTTPException):
    return jsonify({"error": e.description}), e.code


def _handle_unexpected(e: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({"error": "Internal server error"}), 500


def create_app(config: Config | None = None) -> Flask:
    if config is None:
        config = load_config()
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.max_upload_bytes
    app.extensions["docshelf"] = Library(config)
    app.register_blueprint(api)
    CORS(app, origins=config.cors_origin, methods=["GET", "POST", "DELETE", "OPTIONS"],
         allow_headers=["Content-Type"])

    app.register_error_handler(DocShelfError, _handle_docshelf_error)
    app.register_error_handler(RequestEntityTooLarge, _handle_too_large)
    app.register_error_handler(HTTPException, _handle_http_error)
    app.register_error_handler(Exception, _handle_unexpected)

    return app


def serve(config: Config) -> None:
    app = create_app(config)
    print(f"Serving documents: {config.root}")
    print(f"File server running on http://{config.host}:{config.port}")
    app.run(host=config.host, port=config.port, threaded=True)
