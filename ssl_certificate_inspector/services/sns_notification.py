"""
SNS告警服务
"""
import os
import time
from datetime import datetime, timezone
from typing import List, Optional
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..interfaces import NotificationServiceInterface
from ..models import CertificateReport, Severity


# SNS 主题长度上限
MAX_SUBJECT_LENGTH = 100


class SNSAlertService(NotificationServiceInterface):
    """SNS告警服务实现"""

    def __init__(
        self,
        topic_arn: Optional[str] = None,
        region_name: Optional[str] = None,
        min_severity: str = 'high',
        base_delay: float = 1.0,
    ):
        """
        初始化SNS告警服务

        Args:
            topic_arn: SNS主题ARN，如果为None则从环境变量读取
            region_name: AWS区域名称，如果为None则自动检测
            min_severity: 触发告警的最低严重程度
            base_delay: 重试基础延迟时间（秒）
        """
        self.logger = logging.getLogger(__name__)
        self.topic_arn = topic_arn or os.getenv('SNS_TOPIC_ARN')
        self.base_delay = base_delay

        try:
            self.min_severity = Severity(min_severity)
        except ValueError:
            self.logger.warning(f"无效的告警严重程度: {min_severity}，使用默认值 high")
            self.min_severity = Severity.HIGH

        if region_name:
            self.region_name = region_name
        elif self.topic_arn and self.topic_arn.startswith('arn:aws:sns:'):
            # 从SNS ARN中提取区域
            self.region_name = self.topic_arn.split(':')[3]
        else:
            self.region_name = os.getenv('AWS_REGION', 'us-east-1')

        self.sns_client = None
        try:
            self.sns_client = boto3.client('sns', region_name=self.region_name)
            self.logger.info(f"SNS客户端初始化成功，区域: {self.region_name}")
        except (BotoCoreError, ValueError) as e:
            self.logger.error(f"初始化SNS客户端失败: {str(e)}")

    def select_alerts(self, reports: List[CertificateReport]) -> List[CertificateReport]:
        """
        筛选需要告警的报告

        Args:
            reports: 检查报告列表

        Returns:
            List[CertificateReport]: 最高严重程度不低于阈值的报告，按严重程度降序
        """
        selected = [
            report for report in reports
            if report.highest_severity is not None
            and report.highest_severity.rank >= self.min_severity.rank
        ]
        return sorted(selected, key=lambda report: report.highest_severity.rank, reverse=True)

    def send_alert(self, reports: List[CertificateReport]) -> bool:
        """
        发送证书告警

        Args:
            reports: 检查报告列表

        Returns:
            bool: 发送是否成功（没有需要告警的报告时返回True）
        """
        alerts = self.select_alerts(reports)
        if not alerts:
            self.logger.info("没有需要告警的证书，跳过通知发送")
            return True

        if not self._validate_configuration():
            return False

        subject = self._format_subject(alerts)
        message = self.format_notification_content(alerts)

        return self._publish_with_retry(subject, message)

    def _publish_with_retry(self, subject: str, message: str, max_retries: int = 3) -> bool:
        """
        带重试机制的SNS消息发布

        Args:
            subject: 消息主题
            message: 消息内容
            max_retries: 最大重试次数

        Returns:
            bool: 发送是否成功
        """
        for attempt in range(max_retries + 1):
            try:
                response = self.sns_client.publish(
                    TopicArn=self.topic_arn,
                    Subject=subject[:MAX_SUBJECT_LENGTH],
                    Message=message
                )

                self.logger.info(f"SNS告警发送成功，MessageId: {response.get('MessageId')}")
                return True

            except ClientError as e:
                error_code = e.response['Error']['Code']
                error_message = e.response['Error']['Message']

                if self._is_retryable_error(error_code) and attempt < max_retries:
                    wait_time = self.base_delay * (2 ** attempt)  # 指数退避
                    self.logger.warning(
                        f"SNS发送失败 (尝试 {attempt + 1}/{max_retries + 1}) - {error_code}: {error_message}，"
                        f"{wait_time}秒后重试"
                    )
                    time.sleep(wait_time)
                    continue

                self.logger.error(f"SNS发送失败 - {error_code}: {error_message}")
                return False

            except BotoCoreError as e:
                if attempt < max_retries:
                    wait_time = self.base_delay * (2 ** attempt)
                    self.logger.warning(
                        f"发送SNS告警时发生错误 (尝试 {attempt + 1}/{max_retries + 1}): {str(e)}，"
                        f"{wait_time}秒后重试"
                    )
                    time.sleep(wait_time)
                    continue

                self.logger.error(f"发送SNS告警时发生错误: {str(e)}")
                return False

        return False

    def _is_retryable_error(self, error_code: str) -> bool:
        """判断AWS错误代码是否可重试"""
        return error_code in {
            'Throttling',
            'ServiceUnavailable',
            'InternalError',
            'RequestTimeout'
        }

    def format_notification_content(self, reports: List[CertificateReport]) -> str:
        """
        格式化通知内容

        Args:
            reports: 需要告警的报告列表

        Returns:
            str: 格式化的通知内容
        """
        if not reports:
            return "所有SSL证书状态正常。"

        lines = [
            "SSL证书检查告警",
            "=" * 30,
            f"检查时间: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')} UTC",
            ""
        ]

        for report in reports:
            verdict = report.verdict
            lines.append(f"• {report.domain} [{report.highest_severity.value.upper()}]")
            if verdict.issuer:
                lines.append(f"  颁发者: {verdict.issuer}")
            if verdict.valid_to:
                lines.append(f"  过期时间: {verdict.valid_to.strftime('%Y-%m-%d %H:%M:%S')}")
            if verdict.days_remaining is not None:
                lines.append(f"  剩余天数: {verdict.days_remaining} 天")
            if verdict.error:
                lines.append(f"  错误: {verdict.error}")
            for rec in report.recommendations:
                if rec.severity.rank >= self.min_severity.rank:
                    lines.append(f"  建议: {rec.title} - {rec.action}")
            lines.append("")

        lines.append("此消息由SSL证书检查系统自动发送。")
        return "\n".join(lines)

    def _format_subject(self, reports: List[CertificateReport]) -> str:
        """
        格式化通知主题

        Args:
            reports: 需要告警的报告列表

        Returns:
            str: 通知主题
        """
        critical_count = len([r for r in reports if r.highest_severity == Severity.CRITICAL])
        other_count = len(reports) - critical_count

        if critical_count > 0 and other_count > 0:
            return f"🚨 SSL证书警报: {critical_count}个严重, {other_count}个需处理"
        elif critical_count > 0:
            return f"🚨 SSL证书警报: {critical_count}个证书严重问题"
        return f"⚠️ SSL证书提醒: {other_count}个证书需要处理"

    def _validate_configuration(self) -> bool:
        """验证配置是否正确"""
        if not self.sns_client:
            self.logger.error("SNS客户端未初始化")
            return False

        if not self.topic_arn:
            self.logger.error("SNS主题ARN未配置")
            return False

        return True

    def test_connection(self) -> bool:
        """
        测试SNS连接

        Returns:
            bool: 连接是否成功
        """
        if not self._validate_configuration():
            return False

        try:
            self.sns_client.get_topic_attributes(TopicArn=self.topic_arn)
            self.logger.info("SNS连接测试成功")
            return True

        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            self.logger.error(f"SNS连接测试失败 - {error_code}: {error_message}")
            return False

        except BotoCoreError as e:
            self.logger.error(f"SNS连接测试时发生错误: {str(e)}")
            return False

    def get_configuration_status(self) -> dict:
        """
        获取配置状态

        Returns:
            dict: 配置状态信息
        """
        return {
            'sns_client_initialized': self.sns_client is not None,
            'topic_arn_configured': bool(self.topic_arn),
            'topic_arn': self.topic_arn,
            'region_name': self.region_name,
            'min_severity': self.min_severity.value,
            'configuration_valid': self._validate_configuration()
        }
