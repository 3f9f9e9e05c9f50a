"""
证书过期计算服务
"""
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..models import CertificateVerdict


SECONDS_PER_DAY = 86400


class ExpiryCalculator:
    """证书过期计算器"""

    EXPIRED = 'expired'
    EXPIRING_VERY_SOON = 'expiring_very_soon'
    EXPIRING_SOON = 'expiring_soon'
    HEALTHY = 'healthy'
    UNKNOWN = 'unknown'

    def __init__(self, warning_days: int = 30, urgent_days: int = 7):
        """
        初始化过期计算器

        Args:
            warning_days: 提前警告天数，默认30天
            urgent_days: 紧急续期天数，默认7天
        """
        self.warning_days = warning_days
        self.urgent_days = urgent_days

    def calculate_days_remaining(self, valid_to: datetime, now: Optional[datetime] = None) -> int:
        """
        计算距离过期的天数（四舍五入，半天向上取整）

        Args:
            valid_to: 过期时间
            now: 当前时间，默认为当前UTC时间

        Returns:
            int: 剩余天数（负数表示已过期）
        """
        now = now or datetime.now(timezone.utc)
        if valid_to.tzinfo is None:
            valid_to = valid_to.replace(tzinfo=timezone.utc)
        delta = (valid_to - now).total_seconds() / SECONDS_PER_DAY
        return math.floor(delta + 0.5)

    def classify(self, days_remaining: Optional[int]) -> str:
        """
        按剩余天数划分过期窗口

        Args:
            days_remaining: 剩余天数

        Returns:
            str: 过期窗口类别
        """
        if days_remaining is None:
            return self.UNKNOWN
        if days_remaining <= 0:
            return self.EXPIRED
        if days_remaining <= self.urgent_days:
            return self.EXPIRING_VERY_SOON
        if days_remaining <= self.warning_days:
            return self.EXPIRING_SOON
        return self.HEALTHY

    def is_expiring_soon(self, verdict: CertificateVerdict) -> bool:
        """判断证书是否即将过期（在警告期内且未过期）"""
        return self.classify(verdict.days_remaining) in (self.EXPIRING_VERY_SOON, self.EXPIRING_SOON)

    def is_expired(self, verdict: CertificateVerdict) -> bool:
        """判断证书是否已过期"""
        return self.classify(verdict.days_remaining) == self.EXPIRED

    def categorize_verdicts(self, verdicts: List[CertificateVerdict]) -> Dict[str, List[CertificateVerdict]]:
        """
        对检查结论进行分类

        Args:
            verdicts: 检查结论列表

        Returns:
            dict: 分类结果
        """
        categorized: Dict[str, List[CertificateVerdict]] = {
            'valid': [],
            'invalid': [],
            'unreachable': [],
            'expired': [],
            'expiring_soon': [],
            'healthy': [],
        }

        for verdict in verdicts:
            if verdict.valid:
                categorized['valid'].append(verdict)
            elif verdict.has_certificate:
                categorized['invalid'].append(verdict)
            else:
                categorized['unreachable'].append(verdict)

            if self.is_expired(verdict):
                categorized['expired'].append(verdict)
            elif self.is_expiring_soon(verdict):
                categorized['expiring_soon'].append(verdict)
            elif verdict.valid and self.classify(verdict.days_remaining) == self.HEALTHY:
                categorized['healthy'].append(verdict)

        return categorized

    def get_expiry_summary(self, verdicts: List[CertificateVerdict]) -> str:
        """
        获取过期状态摘要

        Args:
            verdicts: 检查结论列表

        Returns:
            str: 摘要信息
        """
        categorized = self.categorize_verdicts(verdicts)

        summary_parts = [
            f"总计: {len(verdicts)} 个域名",
            f"有效: {len(categorized['valid'])} 个",
            f"无效: {len(categorized['invalid'])} 个",
        ]

        if categorized['unreachable']:
            summary_parts.append(f"无法连接: {len(categorized['unreachable'])} 个")

        if categorized['expired']:
            summary_parts.append(f"已过期: {len(categorized['expired'])} 个")

        if categorized['expiring_soon']:
            summary_parts.append(
                f"即将过期({self.warning_days}天内): {len(categorized['expiring_soon'])} 个"
            )

        if categorized['healthy']:
            summary_parts.append(f"健康: {len(categorized['healthy'])} 个")

        return ", ".join(summary_parts)
