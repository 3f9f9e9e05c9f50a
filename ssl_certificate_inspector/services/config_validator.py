"""
配置验证服务
"""
import re
from typing import Any, Dict, Optional
import logging

from ..config import InspectorSettings
from ..models import Severity
from .domain_normalizer import DomainNormalizer


class ConfigValidator:
    """配置验证器"""

    MIN_TIMEOUT = 1.0
    MAX_TIMEOUT = 60.0
    MAX_BULK_DOMAINS = 50

    def __init__(self, settings: Optional[InspectorSettings] = None):
        """
        初始化配置验证器

        Args:
            settings: 待验证的配置，为None时从环境变量读取
        """
        self.settings = settings or InspectorSettings.from_env()
        self.normalizer = DomainNormalizer()
        self.logger = logging.getLogger(__name__)

    def validate_all_configurations(self) -> Dict[str, Any]:
        """
        验证所有配置

        Returns:
            Dict[str, Any]: 验证结果
        """
        validation_result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'configurations': {}
        }

        checks = {
            'timeouts': self.validate_timeouts(),
            'bulk': self.validate_bulk_limits(),
            'domains': self.validate_domains_configuration(),
            'alerts': self.validate_alert_configuration(),
        }

        for name, result in checks.items():
            validation_result['configurations'][name] = result
            if not result['is_valid']:
                validation_result['is_valid'] = False
                validation_result['errors'].extend(result['errors'])
            validation_result['warnings'].extend(result['warnings'])

        return validation_result

    def validate_timeouts(self) -> Dict[str, Any]:
        """
        验证连接超时配置

        Returns:
            Dict[str, Any]: 超时配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'strict_timeout': self.settings.strict_timeout,
            'fallback_timeout': self.settings.fallback_timeout,
        }

        for name, value in (('STRICT_TIMEOUT', self.settings.strict_timeout),
                            ('FALLBACK_TIMEOUT', self.settings.fallback_timeout)):
            if value <= 0:
                result['is_valid'] = False
                result['errors'].append(f"{name} 必须大于0: {value}")
            elif value < self.MIN_TIMEOUT:
                result['warnings'].append(f"{name} 过短: {value}秒，建议至少{self.MIN_TIMEOUT:.0f}秒")
            elif value > self.MAX_TIMEOUT:
                result['warnings'].append(f"{name} 过长: {value}秒")

        if not 0 < self.settings.tls_port < 65536:
            result['is_valid'] = False
            result['errors'].append(f"TLS_PORT 无效: {self.settings.tls_port}")

        return result

    def validate_bulk_limits(self) -> Dict[str, Any]:
        """
        验证批量检查限制

        Returns:
            Dict[str, Any]: 批量配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'max_domains': self.settings.bulk_max_domains,
            'concurrency': self.settings.bulk_concurrency,
        }

        if self.settings.bulk_max_domains < 1:
            result['is_valid'] = False
            result['errors'].append(f"BULK_MAX_DOMAINS 必须至少为1: {self.settings.bulk_max_domains}")
        elif self.settings.bulk_max_domains > self.MAX_BULK_DOMAINS:
            result['warnings'].append(
                f"BULK_MAX_DOMAINS 过大: {self.settings.bulk_max_domains}，"
                f"不受信任的输入可能耗尽连接资源"
            )

        if self.settings.bulk_concurrency < 1:
            result['is_valid'] = False
            result['errors'].append(f"BULK_CONCURRENCY 必须至少为1: {self.settings.bulk_concurrency}")
        elif self.settings.bulk_concurrency > self.settings.bulk_max_domains:
            result['warnings'].append("BULK_CONCURRENCY 大于 BULK_MAX_DOMAINS，多余的并发不会被使用")

        return result

    def validate_domains_configuration(self) -> Dict[str, Any]:
        """
        验证定时巡检的域名列表

        Returns:
            Dict[str, Any]: 域名配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'total_domains': len(self.settings.domains),
            'valid_domains': [],
            'invalid_domains': []
        }

        if not self.settings.domains:
            result['warnings'].append("DOMAINS环境变量为空，定时巡检将被跳过")
            return result

        for domain in self.settings.domains:
            host = self.normalizer.normalize(domain)
            if self.normalizer.validate_domain(host):
                result['valid_domains'].append(host)
            else:
                result['invalid_domains'].append(domain)
                result['warnings'].append(f"域名格式无效: {domain}")

        if not result['valid_domains']:
            result['is_valid'] = False
            result['errors'].append("没有找到有效的域名")

        return result

    def validate_alert_configuration(self) -> Dict[str, Any]:
        """
        验证告警配置

        Returns:
            Dict[str, Any]: 告警配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'topic_arn': self.settings.sns_topic_arn,
            'arn_format_valid': False,
            'min_severity': self.settings.alert_min_severity,
        }

        valid_severities = {severity.value for severity in Severity}
        if self.settings.alert_min_severity not in valid_severities:
            result['is_valid'] = False
            result['errors'].append(f"ALERT_MIN_SEVERITY 无效: {self.settings.alert_min_severity}")

        topic_arn = self.settings.sns_topic_arn
        if not topic_arn:
            result['warnings'].append("SNS_TOPIC_ARN环境变量未设置，告警将不会发送")
            return result

        arn_pattern = r'^arn:aws:sns:[a-z0-9-]+:\d{12}:[a-zA-Z0-9_-]+$'
        if re.match(arn_pattern, topic_arn):
            result['arn_format_valid'] = True
        else:
            result['is_valid'] = False
            result['errors'].append(f"SNS主题ARN格式无效: {topic_arn}")

        return result

    def get_configuration_summary(self) -> str:
        """
        获取配置摘要

        Returns:
            str: 配置摘要文本
        """
        validation_result = self.validate_all_configurations()

        lines = [
            "配置验证摘要",
            "=" * 30
        ]

        if validation_result['is_valid']:
            lines.append("✅ 配置验证通过")
        else:
            lines.append("❌ 配置验证失败")

        if validation_result['errors']:
            lines.append("\n错误:")
            for error in validation_result['errors']:
                lines.append(f"  • {error}")

        if validation_result['warnings']:
            lines.append("\n警告:")
            for warning in validation_result['warnings']:
                lines.append(f"  • {warning}")

        lines.append("\n配置详情:")
        lines.append(f"  严格模式超时: {self.settings.strict_timeout}秒")
        lines.append(f"  备用模式超时: {self.settings.fallback_timeout}秒")
        lines.append(f"  批量上限: {self.settings.bulk_max_domains} 个域名")

        domains_config = validation_result['configurations'].get('domains', {})
        if domains_config.get('valid_domains'):
            lines.append(f"  有效域名数量: {len(domains_config['valid_domains'])}")

        return "\n".join(lines)
