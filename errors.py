class ProxyError(Exception):
    code = 500
    message = "Internal server error"

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


# Rejected before any outbound call is made; answered without meta.

class MethodNotAllowed(ProxyError):
    code = 405
    message = "Method not allowed. Use POST only."


class BadRequest(ProxyError):
    code = 400
    message = "Missing required fields: url, data, headers"


class DomainRejected(ProxyError):
    code = 400

    def __init__(self, hostname):
        self.hostname = hostname
        super().__init__(f"Domain {hostname} is not allowed. Only GHN domains are permitted.")


# Raised by forwarder.forward when the target could not be reached.

class RequestTimeout(ProxyError):
    code = 408
    message = "Request timeout after 30 seconds"


class BadGateway(ProxyError):
    code = 502
    message = "Network error - unable to reach target server"


class InternalError(ProxyError):
    code = 500
