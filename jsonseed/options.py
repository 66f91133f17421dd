"""jsonseed 序列化和反序列化的配置选项.

该模块定义了用于控制 `dumps` 和 `loads` 函数行为的选项标志.
"""

from enum import IntFlag


class JsonOption(IntFlag):
    """jsonseed 配置选项标志.

    可以使用位运算组合多个选项:
        option = JsonOption.COMPACT | JsonOption.OMIT_NONE
    """

    # 默认行为: 分隔符为 ", " 与 ": ", 写入 None 字段, 未知字段报错
    NONE = 0x0000

    # --- 序列化选项 ---

    # 紧凑输出: 分隔符为 "," 与 ":"
    COMPACT = 0x0001

    # 跳过值为 None 的字段
    OMIT_NONE = 0x0002

    # --- 反序列化选项 ---

    # 忽略目标类型中不存在的字段, 而不是抛出 JsonSchemaError
    IGNORE_UNKNOWN = 0x0010
