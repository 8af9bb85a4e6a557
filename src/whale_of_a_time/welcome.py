"""
Welcome page Flask routes
"""

from http import HTTPStatus

from flask import Blueprint, Response

GITHUB_URL = "https://github.com/artofthepossible/whale-of-a-time"

WELCOME_DOCUMENT = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Whale of a Time</title>
</head>
<body>
  <h1>Welcome to My Spring Boot Application</h1>
  <p>This little whale is served straight from memory.</p>
  <p><a href="{GITHUB_URL}">Get it on GitHub</a></p>
</body>
</html>
"""

# encoded once so every response carries identical bytes
WELCOME_BYTES = WELCOME_DOCUMENT.encode("utf-8")

welcome_bp = Blueprint("welcome", __name__)


@welcome_bp.route("/", methods=["GET"], provide_automatic_options=False)
async def welcome():
    return Response(WELCOME_BYTES, status=HTTPStatus.OK, mimetype="text/html")  # 200
