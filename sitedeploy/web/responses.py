"""Web 层统一响应辅助函数"""

from __future__ import annotations

from flask import Response, jsonify

from sitedeploy.core.exceptions import SiteDeployError

# 业务异常 code → HTTP 状态码
_STATUS_BY_CODE = {
    "CONFIG_ERROR": 400,
    "NOT_FOUND": 404,
    "INVALID_STATE": 409,
    "DEPENDENCY_UNRESOLVED": 502,
    "REMOTE_OPERATION_FAILURE": 502,
    "AGGREGATE_UPLOAD_FAILURE": 502,
    "EXTERNAL_PROCESS_FAILURE": 500,
}


def ok(data: dict, status: int = 200) -> tuple[Response, int] | Response:
    """成功响应"""
    if status == 200:
        return jsonify(data)
    return jsonify(data), status


def bad_request(message: str) -> tuple[Response, int]:
    """请求参数错误"""
    return jsonify(error=message), 400


def conflict(message: str) -> tuple[Response, int]:
    """资源状态冲突"""
    return jsonify(error=message), 409


def from_error(exc: SiteDeployError) -> tuple[Response, int]:
    """业务异常按 code 映射状态码"""
    return jsonify(error=str(exc), code=exc.code), _STATUS_BY_CODE.get(exc.code, 500)
