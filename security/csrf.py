from flask import request, jsonify

# double-submit cookie; the login service sets the cookie, the client echoes it in the header
CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"

def require_csrf():
    cookie_token = request.cookies.get(CSRF_COOKIE)
    header_token = request.headers.get(CSRF_HEADER)
    if not cookie_token or not header_token or cookie_token != header_token:
        return jsonify(error="CSRF validation failed"), 403
    return None
