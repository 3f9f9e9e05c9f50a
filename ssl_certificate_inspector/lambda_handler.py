"""
AWS Lambda函数入口点

API Gateway 请求提供单域名检查、检查报告和批量检查；
EventBridge 定时事件对 DOMAINS 中配置的域名进行巡检并发送告警。
"""
import asyncio
import base64
import binascii
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .config import InspectorSettings
from .models import CertificateReport, CertificateVerdict
from .services.bulk_checker import BulkCertificateChecker
from .services.config_validator import ConfigValidator
from .services.domain_normalizer import DomainNormalizer
from .services.error_handler import InputError
from .services.expiry_calculator import ExpiryCalculator
from .services.logger import LoggerService
from .services.sns_notification import SNSAlertService
from .services.ssl_checker import SSLCertificateChecker


ROUTE_CHECK = 'check'
ROUTE_REPORT = 'report'
ROUTE_BULK = 'bulk'


def _response(status_code: int, payload: Any) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(payload, ensure_ascii=False),
    }


def _error_response(status_code: int, message: str, code: str) -> Dict[str, Any]:
    return _response(status_code, {'error': message, 'code': code})


def is_scheduled_event(event: Dict[str, Any]) -> bool:
    """判断是否为EventBridge定时事件"""
    return event.get('source') == 'aws.events' or event.get('detail-type') == 'Scheduled Event'


class SSLCertificateInspector:
    """SSL证书检查主类"""

    def __init__(self, settings: Optional[InspectorSettings] = None):
        """初始化检查器"""
        self.settings = settings or InspectorSettings.from_env()

        self.logger_service = LoggerService(log_level=self.settings.log_level)
        self.normalizer = DomainNormalizer()
        self.ssl_checker = SSLCertificateChecker.from_settings(self.settings)
        self.bulk_checker = BulkCertificateChecker(
            self.ssl_checker,
            max_domains=self.settings.bulk_max_domains,
            concurrency=self.settings.bulk_concurrency,
            logger_service=self.logger_service,
        )
        self.alert_service = SNSAlertService(
            topic_arn=self.settings.sns_topic_arn,
            min_severity=self.settings.alert_min_severity,
        )
        self.expiry_calculator = ExpiryCalculator()

        self.logger_service.log_configuration_info(self.settings.as_dict())

    async def check(self, domain: Any) -> CertificateVerdict:
        """
        检查单个域名

        Raises:
            InputError: 域名缺失或格式无效
        """
        host = self.normalizer.require_valid(domain)
        verdict = await self.ssl_checker.check_certificate(host)
        self.logger_service.log_verdict(verdict)
        return verdict

    async def report(self, domain: Any) -> CertificateReport:
        """
        生成单个域名的检查报告

        Raises:
            InputError: 域名缺失或格式无效
        """
        verdict = await self.check(domain)
        return self.ssl_checker.report_for(verdict)

    async def bulk(self, domains: Any) -> List[CertificateVerdict]:
        """
        批量检查

        Raises:
            InputError: 域名列表缺失或超过上限
        """
        return await self.bulk_checker.check_domains(domains)

    def handle_api_request(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        处理API Gateway请求

        Args:
            event: API Gateway代理事件（REST API 或 HTTP API 格式）

        Returns:
            dict: API Gateway代理响应
        """
        method = self._method(event)
        route = self._route(event)

        if route is None:
            return _error_response(404, 'Not found', 'NOT_FOUND')
        if route == ROUTE_BULK and method != 'POST':
            return _error_response(405, 'Method not allowed', 'METHOD_NOT_ALLOWED')

        try:
            body = self._json_body(event)

            if route == ROUTE_BULK:
                verdicts = asyncio.run(self.bulk(body.get('domains')))
                return _response(200, [verdict.to_dict() for verdict in verdicts])

            domain = self._query(event).get('domain') or body.get('domain')

            if route == ROUTE_REPORT:
                report = asyncio.run(self.report(domain))
                return _response(200, report.to_dict())

            verdict = asyncio.run(self.check(domain))
            return _response(200, verdict.to_dict())

        except InputError as e:
            self.logger_service.logger.warning(f"请求参数无效: {e.code}: {e.message}")
            return _error_response(400, e.message, e.code)

    def run_sweep(self) -> Dict[str, Any]:
        """
        定时巡检配置的域名，并对需要处理的证书发送告警

        Returns:
            dict: 巡检摘要
        """
        self.validate_configuration()

        domains = []
        for domain in self.settings.domains:
            host = self.normalizer.normalize(domain)
            if self.normalizer.validate_domain(host):
                domains.append(host)
            else:
                self.logger_service.logger.warning(f"跳过无效域名: {domain}")

        if not domains:
            self.logger_service.logger.warning("没有找到要检查的域名")
            return {
                'total_domains': 0,
                'alerts': 0,
                'alert_sent': False,
                'summary': '没有找到要检查的域名',
            }

        reports = asyncio.run(self._check_in_chunks(domains))
        verdicts = [report.verdict for report in reports]

        alerts = self.alert_service.select_alerts(reports)
        alert_sent = False
        if alerts:
            alert_sent = self.alert_service.send_alert(reports)
            self.logger_service.log_notification_sent('SNS', len(alerts), alert_sent)

        self.logger_service.log_execution_summary()
        categorized = self.expiry_calculator.categorize_verdicts(verdicts)

        return {
            'total_domains': len(domains),
            'valid_certificates': len(categorized['valid']),
            'invalid_certificates': len(categorized['invalid']),
            'unreachable_domains': len(categorized['unreachable']),
            'expired_domains': [v.domain for v in categorized['expired']],
            'expiring_domains': [v.domain for v in categorized['expiring_soon']],
            'alerts': len(alerts),
            'alert_sent': alert_sent,
            'summary': self.expiry_calculator.get_expiry_summary(verdicts),
        }

    def validate_configuration(self) -> Dict[str, Any]:
        """验证巡检配置并记录错误和警告"""
        validation_result = ConfigValidator(self.settings).validate_all_configurations()

        for warning in validation_result['warnings']:
            self.logger_service.logger.warning(f"配置警告: {warning}")
        for error in validation_result['errors']:
            self.logger_service.logger.error(f"配置错误: {error}")

        return validation_result

    async def _check_in_chunks(self, domains: List[str]) -> List[CertificateReport]:
        reports: List[CertificateReport] = []
        chunk_size = max(1, self.settings.bulk_max_domains)
        total_chunks = (len(domains) + chunk_size - 1) // chunk_size

        for i in range(0, len(domains), chunk_size):
            chunk = domains[i:i + chunk_size]
            self.logger_service.logger.info(
                f"处理第 {i // chunk_size + 1}/{total_chunks} 批域名，包含 {len(chunk)} 个域名"
            )
            reports.extend(await self.bulk_checker.check_reports(chunk))

        return reports

    def _method(self, event: Dict[str, Any]) -> str:
        method = event.get('httpMethod')
        if not method:
            http = (event.get('requestContext') or {}).get('http') or {}
            method = http.get('method') or 'GET'
        return method.upper()

    def _route(self, event: Dict[str, Any]) -> Optional[str]:
        path = (event.get('path') or event.get('rawPath') or '').rstrip('/')
        if path.endswith('/bulk-check-ssl'):
            return ROUTE_BULK
        if path.endswith('/check-ssl/report'):
            return ROUTE_REPORT
        if path.endswith('/check-ssl'):
            return ROUTE_CHECK
        return None

    def _query(self, event: Dict[str, Any]) -> Dict[str, str]:
        return event.get('queryStringParameters') or {}

    def _json_body(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        解析JSON请求体

        Raises:
            InputError: 请求体不是有效的JSON对象
        """
        body = event.get('body')
        if not body:
            return {}

        try:
            if event.get('isBase64Encoded'):
                body = base64.b64decode(body).decode('utf-8')
            parsed = json.loads(body)
        except (ValueError, binascii.Error) as e:
            raise InputError(f"Request body must be valid JSON: {str(e)}", code='INVALID_JSON')

        if not isinstance(parsed, dict):
            raise InputError('Request body must be a JSON object', code='INVALID_JSON')
        return parsed


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda函数入口点

    Args:
        event: API Gateway请求或EventBridge定时事件
        context: Lambda运行时上下文

    Returns:
        dict: API Gateway代理响应或巡检结果
    """
    try:
        inspector = SSLCertificateInspector()

        if is_scheduled_event(event):
            summary = inspector.run_sweep()
            return {
                'statusCode': 200,
                'body': {
                    'message': 'SSL certificate sweep executed successfully',
                    'summary': summary,
                    'timestamp': datetime.now(timezone.utc).isoformat()
                }
            }

        return inspector.handle_api_request(event)

    except Exception as e:
        logging.getLogger(__name__).exception(f"Lambda函数执行时发生严重错误: {str(e)}")
        return _error_response(500, str(e) or 'Unknown error checking SSL certificate', 'INTERNAL_ERROR')
