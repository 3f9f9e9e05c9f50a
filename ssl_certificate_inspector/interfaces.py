"""
服务接口定义
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from .models import (
    CertificateReport,
    CertificateVerdict,
    ExtractedFields,
    ProbeOutcome,
    RawCertificate,
    Recommendation,
)


class TLSProbeInterface(ABC):
    """TLS探测器接口"""

    @abstractmethod
    async def probe(self, host: str) -> ProbeOutcome:
        """探测主机并返回连接结果"""
        pass


class CertificateExtractorInterface(ABC):
    """证书字段提取器接口"""

    @abstractmethod
    def extract(self, cert: Optional[RawCertificate], now: Optional[datetime] = None) -> ExtractedFields:
        """提取证书字段"""
        pass


class SSLCertificateCheckerInterface(ABC):
    """SSL证书检查器接口"""

    @abstractmethod
    async def check_certificate(self, domain: str) -> CertificateVerdict:
        """检查单个域名的SSL证书"""
        pass

    @abstractmethod
    async def generate_report(self, domain: str) -> CertificateReport:
        """生成单个域名的证书报告"""
        pass


class NotificationServiceInterface(ABC):
    """通知服务接口"""

    @abstractmethod
    def send_alert(self, reports: List[CertificateReport]) -> bool:
        """发送证书告警"""
        pass

    @abstractmethod
    def format_notification_content(self, reports: List[CertificateReport]) -> str:
        """格式化通知内容"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_check_start(self, domain_count: int):
        """记录检查开始"""
        pass

    @abstractmethod
    def log_verdict(self, verdict: CertificateVerdict):
        """记录证书检查结论"""
        pass

    @abstractmethod
    def log_error(self, domain: str, error: Exception):
        """记录错误信息"""
        pass


class RecommendationEngineInterface(ABC):
    """建议生成器接口"""

    @abstractmethod
    def recommend_for(self, verdict: CertificateVerdict) -> List[Recommendation]:
        """根据检查结论生成建议"""
        pass
