"""Constants and HTTP fakes shared by the test modules."""

from datetime import date

# Monday. With a 14-day lead time every day of October 2025 is bookable.
TODAY = date(2025, 9, 1)

# October 2025 starts on a Wednesday: Tuesdays and Thursdays are 2, 7, 9, 14 ...
TUESDAY = date(2025, 10, 7)
WEDNESDAY = date(2025, 10, 8)
THURSDAY = date(2025, 10, 9)


class FakeResponse:
    """Just enough of requests.Response for the HTTP collaborators."""

    def __init__(self, status_code: int = 200, payload=None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text or ("" if payload is None else str(payload))
        self.content = b"" if payload is None else b"{...}"

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    """Records calls and replays queued responses (the last one repeats)."""

    def __init__(self, *responses: FakeResponse):
        self.responses = list(responses) or [FakeResponse(200, {})]
        self.calls: list[dict] = []

    def _next(self) -> FakeResponse:
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        return self._next()

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


