"""
soundboard
~~~~~~~~~~

多人音效板的房间成员管理与播放事件转发服务。
"""
__version__ = "0.1.0"
