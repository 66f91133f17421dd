"""jsonseed 日志记录器."""

import logging

logger = logging.getLogger("jsonseed")


def get_context(text: str, pos: int, window: int = 16) -> str:
    """获取指定位置周围输入文本的片段."""
    start = max(0, pos - window)
    end = min(len(text), pos + window)
    # 控制字符转义后再输出, 避免换行打乱错误信息
    chunk = text[start:end].encode("unicode_escape").decode("ascii")

    return f"位置 {pos} 的上下文 (显示 {start}-{end}):\n{chunk}"
