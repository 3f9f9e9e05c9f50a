"""
日志服务
"""
import os
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from ..interfaces import LoggerServiceInterface
from ..models import CertificateVerdict


def _new_stats() -> Dict[str, Any]:
    return {
        'start_time': None,
        'end_time': None,
        'total_domains': 0,
        'valid_certificates': 0,
        'invalid_certificates': 0,
        'unreachable_domains': 0,
        'errors': []
    }


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "ssl_certificate_inspector", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')

        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        self.execution_stats = _new_stats()

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(level)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        self.logger.propagate = False

    def log_check_start(self, domain_count: int):
        """
        记录检查开始

        Args:
            domain_count: 要检查的域名数量
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['total_domains'] = domain_count

        self.logger.info(f"开始SSL证书检查，共 {domain_count} 个域名")

    def log_verdict(self, verdict: CertificateVerdict):
        """
        记录证书检查结论

        Args:
            verdict: 检查结论
        """
        domain = verdict.domain
        valid_to = verdict.valid_to.isoformat() if verdict.valid_to else '未知'

        if not verdict.valid and not verdict.has_certificate:
            self.execution_stats['unreachable_domains'] += 1
            self.logger.error(f"无法获取证书 - 域名: {domain}, 错误: {verdict.error}")
            return

        if not verdict.valid:
            self.execution_stats['invalid_certificates'] += 1
            self.logger.warning(
                f"证书无效 - 域名: {domain}, "
                f"过期时间: {valid_to}, "
                f"颁发者: {verdict.issuer}, "
                f"错误: {verdict.error}"
            )
            return

        self.execution_stats['valid_certificates'] += 1

        if verdict.days_remaining is None:
            self.logger.warning(f"证书有效但无法读取有效期 - 域名: {domain}, 错误: {verdict.error}")
        elif verdict.days_remaining <= 0:
            self.logger.warning(
                f"证书已过期 - 域名: {domain}, "
                f"过期时间: {valid_to}, "
                f"已过期: {abs(verdict.days_remaining)} 天, "
                f"颁发者: {verdict.issuer}"
            )
        elif verdict.days_remaining <= 30:
            self.logger.warning(
                f"证书即将过期 - 域名: {domain}, "
                f"过期时间: {valid_to}, "
                f"剩余天数: {verdict.days_remaining} 天, "
                f"颁发者: {verdict.issuer}"
            )
        else:
            self.logger.info(
                f"证书正常 - 域名: {domain}, "
                f"过期时间: {valid_to}, "
                f"剩余天数: {verdict.days_remaining} 天, "
                f"颁发者: {verdict.issuer}"
            )

    def log_error(self, domain: str, error: Exception):
        """
        记录错误信息

        Args:
            domain: 域名
            error: 异常对象
        """
        error_info = {
            'domain': domain,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

        self.execution_stats['errors'].append(error_info)

        self.logger.error(
            f"域名 {domain} 检查时发生错误: {type(error).__name__}: {str(error)}"
        )

        # 记录详细的堆栈跟踪（调试级别）
        stack = ''.join(traceback.format_exception(type(error), error, error.__traceback__))
        self.logger.debug(f"域名 {domain} 错误堆栈跟踪:\n{stack}")

    def log_check_end(self):
        """记录检查结束"""
        self.execution_stats['end_time'] = datetime.now(timezone.utc)

        if self.execution_stats['start_time']:
            duration = (self.execution_stats['end_time'] - self.execution_stats['start_time']).total_seconds()
        else:
            duration = 0

        self.logger.info(
            f"SSL证书检查完成，耗时 {duration:.2f} 秒: "
            f"有效 {self.execution_stats['valid_certificates']} 个, "
            f"无效 {self.execution_stats['invalid_certificates']} 个, "
            f"无法连接 {self.execution_stats['unreachable_domains']} 个"
        )

    def log_notification_sent(self, notification_type: str, report_count: int, success: bool):
        """
        记录通知发送状态

        Args:
            notification_type: 通知类型（如 "SNS"）
            report_count: 通知包含的报告数量
            success: 是否发送成功
        """
        if success:
            self.logger.info(f"{notification_type} 告警发送成功，包含 {report_count} 个域名")
        else:
            self.logger.error(f"{notification_type} 告警发送失败，包含 {report_count} 个域名")

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        safe_config = self._sanitize_config(config)

        self.logger.info("系统配置信息:")
        for key, value in safe_config.items():
            self.logger.info(f"  {key}: {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据

        Args:
            config: 原始配置

        Returns:
            Dict[str, Any]: 清理后的配置
        """
        safe_config = {}
        for key, value in config.items():
            key_lower = key.lower()

            is_sensitive = (
                key_lower in ('password', 'secret', 'token', 'key', 'sns_topic_arn') or
                key_lower.endswith(('_key', '_secret', '_password', '_token'))
            )

            if is_sensitive and isinstance(value, str) and value:
                if 'arn:' in value:
                    # ARN类型，隐藏账号ID
                    parts = value.split(':')
                    if len(parts) >= 6:
                        safe_value = f"{':'.join(parts[:4])}:***:{':'.join(parts[5:])}"
                    else:
                        safe_value = "***"
                else:
                    safe_value = value[:3] + "***" if len(value) > 3 else "***"
                safe_config[key] = safe_value
            else:
                safe_config[key] = value

        return safe_config

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        stats = self.execution_stats
        duration = 0
        if stats['start_time'] and stats['end_time']:
            duration = (stats['end_time'] - stats['start_time']).total_seconds()

        return {
            'start_time': stats['start_time'].isoformat() if stats['start_time'] else None,
            'end_time': stats['end_time'].isoformat() if stats['end_time'] else None,
            'duration_seconds': duration,
            'total_domains': stats['total_domains'],
            'valid_certificates': stats['valid_certificates'],
            'invalid_certificates': stats['invalid_certificates'],
            'unreachable_domains': stats['unreachable_domains'],
            'valid_rate': (
                stats['valid_certificates'] / stats['total_domains']
                if stats['total_domains'] > 0 else 0
            ),
            'error_count': len(stats['errors']),
            'errors': stats['errors']
        }

    def log_execution_summary(self):
        """记录执行摘要"""
        summary = self.get_execution_summary()

        self.logger.info("=" * 50)
        self.logger.info("执行摘要")
        self.logger.info("=" * 50)
        self.logger.info(f"执行时长: {summary['duration_seconds']:.2f} 秒")
        self.logger.info(f"总域名数: {summary['total_domains']}")
        self.logger.info(f"有效证书: {summary['valid_certificates']}")
        self.logger.info(f"无效证书: {summary['invalid_certificates']}")
        self.logger.info(f"无法连接: {summary['unreachable_domains']}")

        if summary['errors']:
            self.logger.info(f"错误数量: {summary['error_count']}")
            for i, error in enumerate(summary['errors'][:5], 1):  # 只显示前5个错误
                self.logger.info(f"  错误 {i}: {error['domain']} - {error['error_type']}: {error['error_message']}")

            if len(summary['errors']) > 5:
                self.logger.info(f"  ... 还有 {len(summary['errors']) - 5} 个错误")

        self.logger.info("=" * 50)

    def reset_stats(self):
        """重置执行统计"""
        self.execution_stats = _new_stats()
