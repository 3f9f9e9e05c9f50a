"""
修复建议生成服务
"""
from typing import List, Optional

from ..interfaces import RecommendationEngineInterface
from ..models import CertificateVerdict, Recommendation, Severity
from .expiry_calculator import ExpiryCalculator


class RecommendationEngine(RecommendationEngineInterface):
    """根据检查结论生成按严重程度排序的修复建议"""

    def __init__(self, expiry_calculator: Optional[ExpiryCalculator] = None):
        self.expiry_calculator = expiry_calculator or ExpiryCalculator()

    def recommend(
        self,
        valid: bool,
        days_remaining: Optional[int],
        common_name: Optional[str] = None,
        error: Optional[str] = None,
    ) -> List[Recommendation]:
        """
        生成修复建议

        状态类建议只会产生一条，通配符证书提示是附加的。

        Args:
            valid: 严格模式验证是否通过
            days_remaining: 剩余天数
            common_name: 叶子证书的通用名称
            error: 检查错误信息

        Returns:
            List[Recommendation]: 按严重程度降序排列的建议
        """
        window = self.expiry_calculator.classify(days_remaining)
        recommendations = [self._status_recommendation(valid, days_remaining, window, error)]

        if common_name and common_name.startswith('*.'):
            recommendations.append(Recommendation(
                severity=Severity.INFO,
                title='Wildcard Certificate Detected',
                description='This domain is using a wildcard certificate.',
                action=(
                    'Ensure the private key is properly secured, as compromise '
                    'would affect multiple subdomains.'
                ),
            ))

        return sorted(recommendations, key=lambda rec: rec.severity.rank, reverse=True)

    def recommend_for(self, verdict: CertificateVerdict) -> List[Recommendation]:
        """根据检查结论生成建议"""
        return self.recommend(
            verdict.valid,
            verdict.days_remaining,
            common_name=verdict.common_name,
            error=verdict.error,
        )

    def _status_recommendation(
        self,
        valid: bool,
        days_remaining: Optional[int],
        window: str,
        error: Optional[str],
    ) -> Recommendation:
        calc = self.expiry_calculator

        if window == calc.EXPIRED:
            description = 'The SSL certificate has expired.'
            if not valid and error:
                description = f"{description} {error}"
            return Recommendation(
                severity=Severity.CRITICAL,
                title='Expired SSL Certificate',
                description=description,
                action='Renew the SSL certificate immediately.',
            )

        if not valid:
            return Recommendation(
                severity=Severity.HIGH,
                title='Invalid SSL Certificate',
                description=error or 'The SSL certificate for this domain is invalid.',
                action='Obtain a valid SSL certificate from a trusted certificate authority.',
            )

        if window == calc.EXPIRING_VERY_SOON:
            return Recommendation(
                severity=Severity.HIGH,
                title='SSL Certificate Expiring Very Soon',
                description=f"The SSL certificate will expire in {days_remaining} days.",
                action='Renew the SSL certificate immediately.',
            )

        if window == calc.EXPIRING_SOON:
            return Recommendation(
                severity=Severity.MEDIUM,
                title='SSL Certificate Expiring Soon',
                description=f"The SSL certificate will expire in {days_remaining} days.",
                action='Plan to renew the SSL certificate soon.',
            )

        if window == calc.UNKNOWN:
            return Recommendation(
                severity=Severity.LOW,
                title='Certificate Details Unavailable',
                description=error or 'The certificate is trusted but its validity window could not be read.',
                action='Re-run the check or inspect the certificate manually.',
            )

        return Recommendation(
            severity=Severity.SUCCESS,
            title='SSL Certificate Valid',
            description='The SSL certificate is valid and not expiring soon.',
            action='No action needed at this time.',
        )
