import json
import logging
from functools import wraps

from django.core.exceptions import BadRequest, ValidationError
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from ..exceptions import ConflictError, MalformedIdentifierError, NotFoundError

logger = logging.getLogger(__name__)


def error_response(status, message):
    return JsonResponse({"error": message}, status=status)


def _validation_message(exc):
    return "; ".join(str(m) for m in exc.messages) or "Invalid input"


def json_endpoint(view):
    """
    Wrap an API view: require a tenant, parse nothing implicitly, and map
    the error taxonomy onto HTTP status codes.
    """
    @csrf_exempt
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if getattr(request, "company", None) is None:
            return error_response(
                400, getattr(request, "tenant_error", None) or "Missing tenant")
        try:
            return view(request, *args, **kwargs)
        except (MalformedIdentifierError, BadRequest) as exc:
            return error_response(400, str(exc))
        except NotFoundError as exc:
            return error_response(404, str(exc))
        except ConflictError as exc:
            return error_response(409, str(exc))
        except ValidationError as exc:
            return error_response(422, _validation_message(exc))
        except Exception:
            logger.exception("Unhandled error in %s %s", request.method, request.path)
            return error_response(500, "Internal server error")
    return wrapper


def read_json(request):
    """Request body as a dict; an empty body is an empty dict."""
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise BadRequest("Malformed JSON body")
    if not isinstance(payload, dict):
        raise BadRequest("JSON body must be an object")
    return payload


def created(data):
    return JsonResponse(data, status=201)


def ok(data):
    return JsonResponse(data, safe=not isinstance(data, list))


def no_content():
    return HttpResponse(status=204)
