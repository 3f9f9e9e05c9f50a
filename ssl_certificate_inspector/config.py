"""
运行配置
"""
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging


logger = logging.getLogger(__name__)


def _env_number(name: str, default, cast):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return cast(value.strip())
    except ValueError:
        logger.warning(f"环境变量 {name} 的值无效: {value}，使用默认值 {default}")
        return default


@dataclass
class InspectorSettings:
    """证书检查配置"""
    tls_port: int = 443
    strict_timeout: float = 8.0
    fallback_timeout: float = 5.0
    bulk_max_domains: int = 10
    bulk_concurrency: int = 5
    log_level: str = 'INFO'
    domains: List[str] = field(default_factory=list)
    sns_topic_arn: Optional[str] = None
    alert_min_severity: str = 'high'

    @classmethod
    def from_env(cls) -> 'InspectorSettings':
        """
        从环境变量读取配置

        数值格式无效时使用默认值并记录警告。
        """
        domains_str = os.getenv('DOMAINS', '')
        return cls(
            tls_port=_env_number('TLS_PORT', 443, int),
            strict_timeout=_env_number('STRICT_TIMEOUT', 8.0, float),
            fallback_timeout=_env_number('FALLBACK_TIMEOUT', 5.0, float),
            bulk_max_domains=_env_number('BULK_MAX_DOMAINS', 10, int),
            bulk_concurrency=_env_number('BULK_CONCURRENCY', 5, int),
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
            domains=[domain.strip() for domain in domains_str.split(',') if domain.strip()],
            sns_topic_arn=os.getenv('SNS_TOPIC_ARN') or None,
            alert_min_severity=os.getenv('ALERT_MIN_SEVERITY', 'high').strip().lower(),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            'tls_port': self.tls_port,
            'strict_timeout': self.strict_timeout,
            'fallback_timeout': self.fallback_timeout,
            'bulk_max_domains': self.bulk_max_domains,
            'bulk_concurrency': self.bulk_concurrency,
            'log_level': self.log_level,
            'domains': ','.join(self.domains),
            'sns_topic_arn': self.sns_topic_arn or '',
            'alert_min_severity': self.alert_min_severity,
        }
