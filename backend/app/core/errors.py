"""服务内的领域异常。"""


class GazeLogError(Exception):
    """所有领域异常的基类。"""


class StorageError(GazeLogError):
    """存储层失败：连接、建表、序列化或插入失败。

    原始驱动异常通过 ``__cause__`` 保留，调用方不做重试。
    """
