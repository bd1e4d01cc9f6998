"""Gunicorn 生产配置

用法:
  gunicorn --config deploy/gunicorn.conf.py sitedeploy.web.app:app
"""

import os

# ---------- 网络 ----------
bind = os.getenv("GUNICORN_BIND", "127.0.0.1:8888")

# ---------- 并发 ----------
# 同时只允许一个部署的锁是进程内的，因此固定单 worker；轮询请求靠线程并发
workers = 1
threads = int(os.getenv("GUNICORN_THREADS", "4"))
worker_class = "gthread"
# 部署在后台线程执行，请求本身很快返回
timeout = 60

# ---------- 日志 ----------
accesslog = os.getenv("GUNICORN_ACCESS_LOG", "-")
errorlog = os.getenv("GUNICORN_ERROR_LOG", "-")
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# ---------- 进程管理 ----------
graceful_timeout = 30
keepalive = 5
