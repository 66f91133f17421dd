"""JSON 解码器.

`SeedDecoder` 是一次解码会话: 它为根类型选择 Seed, 驱动 `Parser`
消费整个文档, 然后自底向上物化最终值。
"""

from typing import Any, TextIO

from .codecs import CodecRegistry
from .config import JsonConfig
from .exceptions import JsonError, JsonMalformedError
from .log import get_context, logger
from .parser import Parser
from .schema import SchemaCache
from .seed import route_for


class SeedDecoder:
    """类型驱动的解码会话.

    会话不可在多次解码之间并发复用, 但 `SchemaCache` 可以被多个会话共享。
    """

    def __init__(self, cache: SchemaCache, config: JsonConfig | None = None):
        """初始化解码会话.

        Args:
            cache: Schema 缓存 (同时提供编解码器注册表).
            config: 解码配置.
        """
        self.cache = cache
        self.config = config if config is not None else JsonConfig()

    @property
    def registry(self) -> CodecRegistry:
        """标量编解码器注册表."""
        return self.cache.registry

    def decode(self, source: str | TextIO, target: Any) -> Any:
        """解码整个文档为 `target` 类型的值.

        Args:
            source: JSON 文本或文本流.
            target: 目标类型 (模型类, 或以对象为根的 Map 类型).

        Raises:
            JsonMalformedError: 语法错误.
            JsonSchemaError: 目标类型与输入结构不匹配.
            JsonDecodeError: 标量类型不匹配.
        """
        target_name = getattr(target, "__qualname__", None) or repr(target)
        logger.debug("[SeedDecoder] 开始解码 %s", target_name)

        try:
            root = route_for(target, False, self)
            Parser(source, root, self.config.max_depth).parse()
            result = root.spawn()
        except JsonError as e:
            logger.debug("[SeedDecoder] 解码 %s 时出错: %s", target_name, e)
            if isinstance(e, JsonMalformedError) and isinstance(source, str):
                logger.debug("[SeedDecoder] %s", get_context(source, e.pos))
            raise

        logger.debug("[SeedDecoder] 成功解码 %s", target_name)
        return result
