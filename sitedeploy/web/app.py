"""部署 API 服务（基于 Flask）

提供：触发部署、轮询部署进度、版本信息。

启动方式: sitedeploy serve --port 8888
生产部署: gunicorn --config deploy/gunicorn.conf.py sitedeploy.web.app:app
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from sitedeploy import __version__
from sitedeploy.core.exceptions import SiteDeployError
from sitedeploy.web.responses import from_error
from sitedeploy.web.routes.deploy_bp import deploy_bp

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.register_blueprint(deploy_bp)


# =========================================================================
# 全局 JSON 错误处理
# =========================================================================


@app.errorhandler(HTTPException)
def handle_http_exception(exc):
    """将所有 HTTP 异常统一返回 JSON"""
    return jsonify(error=exc.description), exc.code


@app.errorhandler(SiteDeployError)
def handle_deploy_error(exc):
    return from_error(exc)


@app.errorhandler(Exception)
def handle_generic_exception(exc):  # noqa: ARG001
    """捕获未处理异常，返回 500 JSON"""
    logger.exception("未处理的异常")
    return jsonify(error="服务器内部错误"), 500


@app.route("/api/version")
def api_version():
    return jsonify(version=__version__)


def run_server(host: str = "127.0.0.1", port: int = 8888) -> None:
    """启动开发服务器"""
    logger.info("部署 API 服务启动: http://%s:%d", host, port)
    app.run(host=host, port=port, threaded=True)
