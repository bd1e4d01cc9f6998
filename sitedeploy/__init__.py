"""sitedeploy - 静态站点部署编排工具"""

__version__ = "0.1.0"
