class EconomyError(Exception):
    # 调用方可见的错误；status_code 与 code 保持稳定，message 给人看
    status_code = 400
    code = "error"
    default_message = "请求失败"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(EconomyError):
    status_code = 400
    code = "validation_error"
    default_message = "参数错误"


class Unauthorized(EconomyError):
    status_code = 401
    code = "unauthorized"
    default_message = "缺少或无效的登录凭证"


class NotFound(EconomyError):
    status_code = 404
    code = "not_found"
    default_message = "资源不存在"


class OwnershipMismatch(EconomyError):
    status_code = 400
    code = "ownership_mismatch"
    default_message = "资源不属于该用户"


class InsufficientFunds(EconomyError):
    status_code = 400
    code = "insufficient_funds"
    default_message = "余额不足"


class AlreadyClaimed(EconomyError):
    status_code = 409
    code = "already_claimed"
    default_message = "今日奖励已领取"


class NoOpenSession(EconomyError):
    status_code = 409
    code = "no_open_session"
    default_message = "没有可关闭的直播场次"
