from __future__ import annotations


class GestureTreeError(Exception):
    """所有 GestureTree 异常的基类。"""


class InputUnavailable(GestureTreeError):
    """本帧未检测到手部。属于正常信号，调用方应视为无操作。"""


class InvalidStateError(GestureTreeError):
    """粒子注册表被不一致地访问（如零张照片时解析当前照片）。"""


class ConfigurationError(GestureTreeError):
    """启动参数非法：粒子数非正、阈值越界或平滑系数不在 (0, 1) 内。"""
