"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    """将时间转换为ISO格式字符串（UTC，毫秒精度，Z结尾）"""
    if value is None:
        return None
    return value.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class Severity(str, Enum):
    """建议严重程度，按从高到低排列"""
    CRITICAL = 'critical'
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'
    INFO = 'info'
    SUCCESS = 'success'

    @property
    def rank(self) -> int:
        """数值越大越严重"""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 5,
    Severity.HIGH: 4,
    Severity.MEDIUM: 3,
    Severity.LOW: 2,
    Severity.INFO: 1,
    Severity.SUCCESS: 0,
}


class ProbeStatus(Enum):
    """TLS探测结果类型"""
    TRUSTED = 'trusted'
    UNTRUSTED = 'untrusted'
    UNREACHABLE = 'unreachable'


@dataclass
class ChainLink:
    """证书链中的一个颁发者证书"""
    subject: Dict[str, str]
    issuer: Dict[str, str]
    valid_from: Optional[datetime]
    valid_to: Optional[datetime]
    fingerprint: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'subject': dict(self.subject),
            'issuer': dict(self.issuer),
            'validFrom': _isoformat(self.valid_from),
            'validTo': _isoformat(self.valid_to),
            'fingerprint': self.fingerprint,
        }


@dataclass
class SecurityInfo:
    """协商的会话参数及证书链"""
    protocol: Optional[str] = None
    cipher_suite: Optional[str] = None
    key_exchange: Optional[str] = None
    certificate_chain: List[ChainLink] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.protocol is not None:
            data['protocol'] = self.protocol
        if self.cipher_suite is not None:
            data['cipherSuite'] = self.cipher_suite
        if self.key_exchange is not None:
            data['keyExchange'] = self.key_exchange
        data['certificateChain'] = [link.to_dict() for link in self.certificate_chain]
        return data


@dataclass
class CertificateVerdict:
    """单次证书检查的结论"""
    domain: str
    valid: bool
    issuer: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    days_remaining: Optional[int] = None
    error: Optional[str] = None
    security_info: Optional[SecurityInfo] = None
    common_name: Optional[str] = None
    subject_alt_names: List[str] = field(default_factory=list)

    @property
    def has_certificate(self) -> bool:
        """是否观察到了证书"""
        return self.valid_to is not None or self.issuer is not None

    @property
    def is_expired(self) -> bool:
        return self.days_remaining is not None and self.days_remaining <= 0

    def to_dict(self) -> Dict[str, Any]:
        """序列化为JSON结构（camelCase，省略缺失字段）"""
        data: Dict[str, Any] = {
            'domain': self.domain,
            'valid': self.valid,
        }
        if self.issuer is not None:
            data['issuer'] = self.issuer
        if self.valid_from is not None:
            data['validFrom'] = _isoformat(self.valid_from)
        if self.valid_to is not None:
            data['validTo'] = _isoformat(self.valid_to)
        if self.days_remaining is not None:
            data['daysRemaining'] = self.days_remaining
        if self.error is not None:
            data['error'] = self.error
        if self.security_info is not None:
            data['securityInfo'] = self.security_info.to_dict()
        if self.common_name is not None:
            data['commonName'] = self.common_name
        if self.subject_alt_names:
            data['subjectAltNames'] = list(self.subject_alt_names)
        return data


@dataclass
class Recommendation:
    """修复建议"""
    severity: Severity
    title: str
    description: str
    action: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'severity': self.severity.value,
            'title': self.title,
            'description': self.description,
            'action': self.action,
        }


@dataclass
class CertificateReport:
    """证书检查报告"""
    domain: str
    timestamp: datetime
    verdict: CertificateVerdict
    recommendations: List[Recommendation]

    @property
    def highest_severity(self) -> Optional[Severity]:
        if not self.recommendations:
            return None
        return max((rec.severity for rec in self.recommendations), key=lambda s: s.rank)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'domain': self.domain,
            'timestamp': _isoformat(self.timestamp),
            'sslResult': self.verdict.to_dict(),
            'recommendations': [rec.to_dict() for rec in self.recommendations],
        }


@dataclass
class RawCertificate:
    """
    解析后的证书结构

    issuer_certificate 指向上一级证书；自签名根证书指向自身。
    """
    subject: Dict[str, str]
    issuer: Dict[str, str]
    not_before: Optional[datetime]
    not_after: Optional[datetime]
    fingerprint: str
    subject_alt_names: List[str] = field(default_factory=list)
    issuer_certificate: Optional['RawCertificate'] = field(default=None, repr=False)

    @property
    def common_name(self) -> Optional[str]:
        return self.subject.get('CN')

    @property
    def is_self_signed(self) -> bool:
        return self.subject == self.issuer


@dataclass
class TLSSession:
    """一次完成的TLS握手所获得的信息"""
    leaf: Optional[bytes]
    chain: List[bytes] = field(default_factory=list)
    protocol: Optional[str] = None
    cipher: Optional[Tuple[str, str, int]] = None


@dataclass
class ProbeOutcome:
    """双模式TLS探测结果"""
    status: ProbeStatus
    session: Optional[TLSSession] = None
    strict_error: Optional[str] = None
    error: Optional[str] = None

    @property
    def certificate_observed(self) -> bool:
        return self.session is not None and self.session.leaf is not None


@dataclass
class ExtractedFields:
    """证书字段提取结果"""
    issuer: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    days_remaining: Optional[int] = None
    certificate_chain: List[ChainLink] = field(default_factory=list)
    common_name: Optional[str] = None
    subject_alt_names: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.issuer is None and self.valid_to is None
