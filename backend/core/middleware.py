import time, uuid


class RequestIDMiddleware:
    """
    Adds/propagates a request id for tracing. Accessible in logs and responses.
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        rid = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())
        request.request_id = rid
        response = self.get_response(request)
        response["X-Request-ID"] = rid
        return response


class TimingMiddleware:
    """
    Adds X-Response-Time-ms for quick perf inspection.
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        t0 = time.perf_counter()
        resp = self.get_response(request)
        dt = int((time.perf_counter() - t0) * 1000)
        resp["X-Response-Time-ms"] = str(dt)
        return resp
