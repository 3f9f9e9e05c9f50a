"""
SNS告警服务测试
"""
import os
from unittest.mock import patch, MagicMock
from datetime import datetime, timezone, timedelta

import boto3
from botocore.exceptions import ClientError, EndpointConnectionError
from moto import mock_aws

from ssl_certificate_inspector.models import CertificateReport, CertificateVerdict, Severity
from ssl_certificate_inspector.services.recommendation_engine import RecommendationEngine
from ssl_certificate_inspector.services.sns_notification import SNSAlertService


TOPIC_ARN = "arn:aws:sns:us-east-1:123456789012:ssl-alerts"


def make_report(domain, valid=True, days_remaining=90, error=None, common_name=None):
    verdict = CertificateVerdict(
        domain=domain,
        valid=valid,
        issuer="Test CA" if days_remaining is not None else None,
        valid_to=(
            datetime.now(timezone.utc) + timedelta(days=days_remaining)
            if days_remaining is not None else None
        ),
        days_remaining=days_remaining,
        error=error,
        common_name=common_name,
    )
    return CertificateReport(
        domain=domain,
        timestamp=datetime.now(timezone.utc),
        verdict=verdict,
        recommendations=RecommendationEngine().recommend_for(verdict),
    )


def client_error(code, message="error"):
    return ClientError({'Error': {'Code': code, 'Message': message}}, 'Publish')


class TestSNSAlertService:
    """SNS告警服务测试类"""

    def setup_method(self):
        """测试前准备"""
        self.healthy = make_report("healthy.com", days_remaining=90)
        self.expiring = make_report("expiring.com", days_remaining=5)
        self.soon = make_report("soon.com", days_remaining=20)
        self.expired = make_report(
            "expired.com", valid=False, days_remaining=-2,
            error="Certificate validation failed: certificate has expired",
        )
        self.unreachable = make_report("down.com", valid=False, days_remaining=None, error="Connection timeout")

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_init_with_topic_arn(self, mock_boto3):
        """测试使用指定topic_arn初始化，区域取自ARN"""
        mock_client = MagicMock()
        mock_boto3.client.return_value = mock_client

        service = SNSAlertService(topic_arn="arn:aws:sns:eu-west-1:123456789012:ssl-alerts")

        assert service.sns_client == mock_client
        assert service.region_name == 'eu-west-1'
        mock_boto3.client.assert_called_once_with('sns', region_name='eu-west-1')

    @patch.dict(os.environ, {'SNS_TOPIC_ARN': 'arn:aws:sns:us-east-1:123456789012:env-topic'})
    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_init_from_env(self, mock_boto3):
        """测试从环境变量初始化"""
        service = SNSAlertService()

        assert service.topic_arn == 'arn:aws:sns:us-east-1:123456789012:env-topic'

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_init_invalid_severity(self, mock_boto3):
        """测试无效的告警严重程度使用默认值"""
        service = SNSAlertService(topic_arn=TOPIC_ARN, min_severity='urgent')

        assert service.min_severity == Severity.HIGH

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_init_client_failure(self, mock_boto3):
        """测试SNS客户端初始化失败"""
        mock_boto3.client.side_effect = ValueError("Invalid endpoint")

        service = SNSAlertService(topic_arn=TOPIC_ARN)

        assert service.sns_client is None
        assert service.send_alert([self.expired]) is False

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_select_alerts(self, mock_boto3):
        """测试按严重程度筛选告警"""
        service = SNSAlertService(topic_arn=TOPIC_ARN, min_severity='high')
        reports = [self.healthy, self.soon, self.expiring, self.expired, self.unreachable]

        alerts = service.select_alerts(reports)

        assert [r.domain for r in alerts] == ["expired.com", "expiring.com", "down.com"]

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_select_alerts_medium_threshold(self, mock_boto3):
        """测试较低的告警阈值"""
        service = SNSAlertService(topic_arn=TOPIC_ARN, min_severity='medium')

        alerts = service.select_alerts([self.healthy, self.soon])

        assert [r.domain for r in alerts] == ["soon.com"]

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_format_notification_content_empty(self, mock_boto3):
        """测试空列表的通知内容"""
        service = SNSAlertService(topic_arn=TOPIC_ARN)

        assert service.format_notification_content([]) == "所有SSL证书状态正常。"

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_format_notification_content(self, mock_boto3):
        """测试通知内容格式化"""
        service = SNSAlertService(topic_arn=TOPIC_ARN)

        content = service.format_notification_content([self.expired, self.unreachable])

        assert "SSL证书检查告警" in content
        assert "• expired.com [CRITICAL]" in content
        assert "剩余天数: -2 天" in content
        assert "错误: Certificate validation failed: certificate has expired" in content
        assert "建议: Expired SSL Certificate - Renew the SSL certificate immediately." in content
        assert "• down.com [HIGH]" in content
        assert "错误: Connection timeout" in content
        assert "此消息由SSL证书检查系统自动发送。" in content

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_format_subject(self, mock_boto3):
        """测试通知主题"""
        service = SNSAlertService(topic_arn=TOPIC_ARN)

        assert service._format_subject([self.expired]) == "🚨 SSL证书警报: 1个证书严重问题"
        assert service._format_subject([self.expiring]) == "⚠️ SSL证书提醒: 1个证书需要处理"
        assert service._format_subject([self.expired, self.expiring]) == "🚨 SSL证书警报: 1个严重, 1个需处理"

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_send_alert_nothing_to_report(self, mock_boto3):
        """测试没有需要告警的证书"""
        mock_client = MagicMock()
        mock_boto3.client.return_value = mock_client
        service = SNSAlertService(topic_arn=TOPIC_ARN)

        assert service.send_alert([self.healthy]) is True
        mock_client.publish.assert_not_called()

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_send_alert_success(self, mock_boto3):
        """测试发送告警成功"""
        mock_client = MagicMock()
        mock_client.publish.return_value = {'MessageId': 'test-message-id'}
        mock_boto3.client.return_value = mock_client
        service = SNSAlertService(topic_arn=TOPIC_ARN)

        result = service.send_alert([self.healthy, self.expired])

        assert result is True
        call_kwargs = mock_client.publish.call_args[1]
        assert call_kwargs['TopicArn'] == TOPIC_ARN
        assert call_kwargs['Subject'] == "🚨 SSL证书警报: 1个证书严重问题"
        assert "expired.com" in call_kwargs['Message']
        assert "healthy.com" not in call_kwargs['Message']

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_send_alert_without_topic(self, mock_boto3):
        """测试未配置主题时不发送"""
        with patch.dict(os.environ, {}, clear=True):
            service = SNSAlertService()

        assert service.send_alert([self.expired]) is False

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_send_alert_non_retryable_error(self, mock_boto3):
        """测试不可重试的错误"""
        mock_client = MagicMock()
        mock_client.publish.side_effect = client_error('AuthorizationError', 'Not authorized')
        mock_boto3.client.return_value = mock_client
        service = SNSAlertService(topic_arn=TOPIC_ARN)

        assert service.send_alert([self.expired]) is False
        assert mock_client.publish.call_count == 1

    @patch('ssl_certificate_inspector.services.sns_notification.time.sleep')
    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_publish_with_retry_success_after_retry(self, mock_boto3, mock_sleep):
        """测试重试后发送成功"""
        mock_client = MagicMock()
        mock_client.publish.side_effect = [
            client_error('Throttling', 'Rate exceeded'),
            {'MessageId': 'test-message-id'},
        ]
        mock_boto3.client.return_value = mock_client
        service = SNSAlertService(topic_arn=TOPIC_ARN, base_delay=0.5)

        assert service._publish_with_retry("subject", "message") is True
        assert mock_client.publish.call_count == 2
        mock_sleep.assert_called_once_with(0.5)

    @patch('ssl_certificate_inspector.services.sns_notification.time.sleep')
    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_publish_with_retry_max_retries_exceeded(self, mock_boto3, mock_sleep):
        """测试超过最大重试次数"""
        mock_client = MagicMock()
        mock_client.publish.side_effect = EndpointConnectionError(endpoint_url='https://sns.us-east-1.amazonaws.com')
        mock_boto3.client.return_value = mock_client
        service = SNSAlertService(topic_arn=TOPIC_ARN)

        assert service._publish_with_retry("subject", "message", max_retries=2) is False
        assert mock_client.publish.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_publish_truncates_subject(self, mock_boto3):
        """测试主题长度被截断"""
        mock_client = MagicMock()
        mock_boto3.client.return_value = mock_client
        service = SNSAlertService(topic_arn=TOPIC_ARN)

        service._publish_with_retry("x" * 150, "message")

        assert len(mock_client.publish.call_args[1]['Subject']) == 100

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_is_retryable_error(self, mock_boto3):
        """测试可重试错误判断"""
        service = SNSAlertService(topic_arn=TOPIC_ARN)

        assert service._is_retryable_error('Throttling') is True
        assert service._is_retryable_error('ServiceUnavailable') is True
        assert service._is_retryable_error('InvalidParameter') is False

    @patch('ssl_certificate_inspector.services.sns_notification.boto3')
    def test_get_configuration_status(self, mock_boto3):
        """测试获取配置状态"""
        service = SNSAlertService(topic_arn=TOPIC_ARN, min_severity='medium')

        status = service.get_configuration_status()

        assert status['sns_client_initialized'] is True
        assert status['topic_arn_configured'] is True
        assert status['region_name'] == 'us-east-1'
        assert status['min_severity'] == 'medium'
        assert status['configuration_valid'] is True


class TestSNSAlertServiceWithMoto:
    """使用moto模拟SNS的告警服务测试"""

    @mock_aws
    def test_send_alert_to_topic(self):
        """测试向模拟的SNS主题发送告警"""
        sns = boto3.client('sns', region_name='us-east-1')
        topic_arn = sns.create_topic(Name='ssl-alerts')['TopicArn']
        service = SNSAlertService(topic_arn=topic_arn)

        report = make_report("expired.com", valid=False, days_remaining=-1, error="certificate has expired")

        assert service.send_alert([report]) is True

    @mock_aws
    def test_test_connection(self):
        """测试SNS连接检查"""
        sns = boto3.client('sns', region_name='us-east-1')
        topic_arn = sns.create_topic(Name='ssl-alerts')['TopicArn']

        assert SNSAlertService(topic_arn=topic_arn).test_connection() is True

    @mock_aws
    def test_test_connection_missing_topic(self):
        """测试主题不存在时连接检查失败"""
        service = SNSAlertService(topic_arn="arn:aws:sns:us-east-1:123456789012:missing-topic")

        assert service.test_connection() is False
