import logging

from fastapi import Request
from jose import JWTError, jwt

from app.config import settings
from app.errors import Unauthorized

TOKEN_HEADER_NAMES = ["authorization", "x-auth-token"]
logger = logging.getLogger("livegift.security")


def _mask(value) -> str:
    text = str(value or "").strip()
    if not text:
        return "-"
    if len(text) <= 8:
        return text
    return f"{text[:4]}...{text[-4:]}"


def _audit_auth_failure(request: Request | None, reason: str, *, token_present: bool) -> None:
    if not request:
        logger.warning("AUTH_DENY reason=%s", reason)
        return
    path = getattr(getattr(request, "url", None), "path", "-")
    method = getattr(request, "method", "-")
    client = getattr(request, "client", None)
    ip = getattr(client, "host", "-") if client else "-"
    logger.warning(
        "AUTH_DENY reason=%s method=%s path=%s ip=%s token_present=%s",
        reason,
        method,
        path,
        ip,
        int(bool(token_present)),
    )


def _extract_auth_token(request: Request) -> str | None:
    headers = getattr(request, "headers", None)
    token = None
    if headers:
        for name in TOKEN_HEADER_NAMES:
            value = headers.get(name)
            if not value:
                continue
            raw = value.strip()
            if name == "authorization":
                if raw.lower().startswith("bearer "):
                    raw = raw.split(" ", 1)[1].strip()
                elif " " in raw:
                    # 仅支持 Bearer 格式
                    continue
            token = raw
            if token:
                break
    if not token:
        # EventSource 无法设置请求头，允许通过查询参数传递
        query = getattr(request, "query_params", None)
        if query:
            token = (query.get("token") or query.get("access_token") or "").strip()
    return token or None


def decode_account_id(token: str, request: Request | None = None) -> int:
    try:
        payload = jwt.decode(token, settings.AUTH_JWT_SECRET, algorithms=[settings.AUTH_JWT_ALGORITHM])
    except JWTError:
        _audit_auth_failure(request, "invalid_token", token_present=True)
        raise Unauthorized("无效登录凭证")
    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        _audit_auth_failure(request, "token_bad_sub", token_present=True)
        raise Unauthorized("登录凭证缺少用户信息")


def issue_token(account_id: int) -> str:
    # 仅供本地联调与测试，正式令牌由认证服务签发
    return jwt.encode({"sub": str(account_id)}, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)


def get_request_account_id(request: Request) -> int | None:
    # 返回已登录账号 id；允许匿名时返回 None
    token = _extract_auth_token(request)
    if token:
        account_id = decode_account_id(token, request)
        logger.debug("AUTH_OK account=%s", _mask(account_id))
        return account_id
    if settings.AUTH_REQUIRED:
        _audit_auth_failure(request, "missing_identity", token_present=False)
        raise Unauthorized("缺少用户身份")
    return None
