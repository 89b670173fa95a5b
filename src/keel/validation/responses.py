"""Turn a ``ValidationFailure`` into a response for the client.

JSON clients get ``422 {"errors": {...}}``. Browser form posts are sent
back to the page they came from; the errors and the old input are left
in ``request.state`` under ``"errors"`` and ``"old"`` for the session
layer to flash.
"""

from keel.errors import ValidationFailure
from keel.http.request import Request
from keel.http.response import Response, json_response, redirect


def failure_response(request: Request, failure: ValidationFailure) -> Response:
    """Answer a failed validation the way the client expects.

    Usage::

        def store(request: Request, db: QueryBuilder) -> Response:
            try:
                data = request.validate({"email": "required|email"}, db=db)
            except ValidationFailure as failure:
                return failure_response(request, failure)
            ...
    """
    if request.expects_json:
        return json_response({"errors": failure.errors}, status=422)

    request.state["errors"] = failure.errors
    request.state["old"] = failure.old_input
    return redirect(request.header("referer") or "/")
