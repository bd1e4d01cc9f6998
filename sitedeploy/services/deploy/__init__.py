"""部署编排模块

拆分说明：
- models.py: 部署目标与运行期上下文
- phases.py: 4 个阶段实现
- orchestrator.py: 协调器
"""

from sitedeploy.services.deploy.models import DeploymentContext, DeploymentTarget
from sitedeploy.services.deploy.orchestrator import DeploymentOrchestrator
from sitedeploy.services.deploy.phases import DeploymentPhases

__all__ = [
    "DeploymentContext",
    "DeploymentOrchestrator",
    "DeploymentPhases",
    "DeploymentTarget",
]
