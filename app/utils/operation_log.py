import json

from fastapi.encoders import jsonable_encoder

from models.logs import OperationLog


def add_operation_log(
    db,
    *,
    account_id: int | None,
    action: str | None,
    stream_id: int | None = None,
    detail=None,
):
    # 与业务写入同一事务，回滚时一起消失
    if not action:
        return
    detail_value = detail
    if detail is not None and not isinstance(detail, str):
        detail_value = json.dumps(jsonable_encoder(detail), ensure_ascii=False)
    db.add(OperationLog(
        account_id=account_id,
        action=action,
        stream_id=stream_id,
        detail=detail_value,
    ))
