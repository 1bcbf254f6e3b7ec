"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 API 层或编排层做统一捕获与用户提示。

TransportError 一族（NetworkError / ApiError / RateLimitError / ParseError）
表示与上游模型服务的交互失败，编排层会把它们转换为一条终止诊断增量。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "NETWORK_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 session_id、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class TransportError(BusinessError):
    """上游不可达、返回非成功状态或响应无法解析。"""


class NetworkError(TransportError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(TransportError):
    """第三方 API 返回非 2xx/429 错误时抛出。"""


class RateLimitError(TransportError):
    """Provider 限流错误，本项目不做自动重试。"""


class ParseError(TransportError):
    """响应体不是合法 JSON 或结构不符合预期。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class SinkClosedError(BusinessError):
    """输出通道已结束（已发送终止增量或客户端断开）后仍尝试写入。"""
