"""
SSL证书检查服务
"""
from datetime import datetime, timezone
from typing import Optional
import logging

from ..interfaces import SSLCertificateCheckerInterface, TLSProbeInterface
from ..models import CertificateReport, CertificateVerdict
from .domain_normalizer import DomainNormalizer
from .error_handler import InputError
from .recommendation_engine import RecommendationEngine
from .tls_probe import DualModeTLSProbe
from .verdict_assembler import VerdictAssembler


class SSLCertificateChecker(SSLCertificateCheckerInterface):
    """SSL证书检查器实现"""

    def __init__(
        self,
        probe: Optional[TLSProbeInterface] = None,
        normalizer: Optional[DomainNormalizer] = None,
        assembler: Optional[VerdictAssembler] = None,
        recommendation_engine: Optional[RecommendationEngine] = None,
    ):
        """
        初始化SSL证书检查器

        Args:
            probe: TLS探测器，默认为 DualModeTLSProbe
            normalizer: 域名规范化器
            assembler: 检查结论组装器
            recommendation_engine: 建议生成器
        """
        self.probe = probe or DualModeTLSProbe()
        self.normalizer = normalizer or DomainNormalizer()
        self.assembler = assembler or VerdictAssembler()
        self.recommendation_engine = recommendation_engine or RecommendationEngine()
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings) -> 'SSLCertificateChecker':
        """根据配置创建检查器"""
        probe = DualModeTLSProbe(
            port=settings.tls_port,
            strict_timeout=settings.strict_timeout,
            fallback_timeout=settings.fallback_timeout,
        )
        return cls(probe=probe)

    async def check_certificate(self, domain: str) -> CertificateVerdict:
        """
        检查单个域名的SSL证书

        除输入错误外，任何异常都会被转换为 valid=False 的检查结论。

        Args:
            domain: 要检查的域名（可以带协议和路径）

        Returns:
            CertificateVerdict: 检查结论

        Raises:
            InputError: 域名为空
        """
        host = self.normalizer.require(domain)

        try:
            outcome = await self.probe.probe(host)
            verdict = self.assembler.assemble(host, outcome)
        except InputError:
            raise
        except Exception as e:
            self.logger.error(f"检查域名 {host} 的证书时发生未预期的错误: {type(e).__name__}: {str(e)}")
            return self.assembler.failed(host, e)

        if verdict.valid:
            self.logger.info(f"域名 {host} 证书有效，剩余天数: {verdict.days_remaining}")
        else:
            self.logger.info(f"域名 {host} 证书检查未通过: {verdict.error}")
        return verdict

    async def generate_report(self, domain: str) -> CertificateReport:
        """
        生成证书检查报告（检查结论 + 修复建议）

        Args:
            domain: 要检查的域名

        Returns:
            CertificateReport: 检查报告
        """
        verdict = await self.check_certificate(domain)
        return self.report_for(verdict)

    def report_for(self, verdict: CertificateVerdict) -> CertificateReport:
        """为已有的检查结论生成报告"""
        return CertificateReport(
            domain=verdict.domain,
            timestamp=datetime.now(timezone.utc),
            verdict=verdict,
            recommendations=self.recommendation_engine.recommend_for(verdict),
        )
