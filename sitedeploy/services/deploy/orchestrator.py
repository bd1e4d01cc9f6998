"""部署编排器 - 协调 4 阶段流水线

职责：
- 在一个顶层步骤下按顺序执行 build → configure → upload，任一失败即停止
- 全部成功后标记步骤完成，解析并上报公开访问地址
- 未预期的异常（包括取消）先把步骤标记为失败，再原样抛给调用方
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from sitedeploy.core.models import DeploymentOutcome
from sitedeploy.core.reporter import ProgressReporter
from sitedeploy.services.deploy.models import DeploymentContext

if TYPE_CHECKING:
    from sitedeploy.services.deploy.models import DeploymentTarget
    from sitedeploy.services.deploy.phases import DeploymentPhases

logger = logging.getLogger(__name__)

STEP_NAME = "Deploying static site"


class DeploymentOrchestrator:
    """静态站点部署编排器（每次 deploy() 都是独立的一次部署）"""

    def __init__(
        self,
        target: DeploymentTarget,
        phases: DeploymentPhases,
        reporter: ProgressReporter | None = None,
    ) -> None:
        self.target = target
        self.phases = phases
        self.reporter = reporter or ProgressReporter()

    async def deploy(self) -> DeploymentOutcome:
        """执行一次部署，预期内的失败以 DeploymentOutcome 返回"""
        ctx = DeploymentContext(target=self.target)
        logger.info("开始部署静态站点: %s", self.target.site_dir)

        with self.reporter.create_step(STEP_NAME) as step:
            try:
                for phase in (self.phases.build, self.phases.configure, self.phases.upload):
                    result = await phase(step, ctx)
                    ctx.phases.append(result)
                    if not result.success:
                        step.fail(result.message)
                        logger.error("部署在 %s 阶段终止: %s", result.phase, result.message)
                        return DeploymentOutcome(
                            success=False, error=result.error, phases=ctx.phases,
                        )

                step.complete("Successfully deployed static site")
            except (Exception, asyncio.CancelledError) as e:
                reason = str(e) or type(e).__name__
                step.fail(f"Static site deployment failed: {reason}")
                raise

        endpoint = await self.phases.finalize(ctx)
        self.reporter.complete_publish(
            f"Static site deployed successfully! Access it at: {endpoint}",
        )
        logger.info("部署完成: %s (%d 个文件)", endpoint, len(ctx.uploaded))
        return DeploymentOutcome(success=True, summary=endpoint, phases=ctx.phases)
