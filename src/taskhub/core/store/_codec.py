"""存储层时间戳与 LIKE 模式编码"""

from datetime import UTC, datetime


def to_db_ts(value: datetime) -> str:
    """统一转为 UTC、固定微秒精度的 ISO 字符串，保证字典序即时间序

    naive datetime 视为 UTC。
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def from_db_ts(value: str) -> datetime:
    return datetime.fromisoformat(value)


def casefold(value: str | None) -> str | None:
    """注册为 SQLite 函数 casefold()，内置 LOWER() 只处理 ASCII"""
    return value.casefold() if value is not None else None


def like_contains(text: str) -> str:
    """构造大小写不敏感子串匹配的 LIKE 模式（配合 casefold() 与 ESCAPE '\\'）"""
    escaped = (
        text.casefold()
        .replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )
    return f"%{escaped}%"
