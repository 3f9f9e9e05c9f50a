"""
批量证书检查服务
"""
import asyncio
from typing import Any, List, Optional
import logging

from ..interfaces import LoggerServiceInterface
from ..models import CertificateReport, CertificateVerdict
from .error_handler import InputError
from .ssl_checker import SSLCertificateChecker


class BulkCertificateChecker:
    """批量证书检查器"""

    def __init__(
        self,
        checker: Optional[SSLCertificateChecker] = None,
        max_domains: int = 10,
        concurrency: int = 5,
        logger_service: Optional[LoggerServiceInterface] = None,
    ):
        """
        初始化批量证书检查器

        Args:
            checker: 单域名检查器
            max_domains: 单次请求允许的最大域名数量
            concurrency: 同时进行的检查数量上限
            logger_service: 日志服务，用于记录每个结论
        """
        self.checker = checker or SSLCertificateChecker()
        self.max_domains = max_domains
        self.concurrency = max(1, concurrency)
        self.logger_service = logger_service
        self.logger = logging.getLogger(__name__)

    def validate_request(self, domains: Any) -> List[Any]:
        """
        校验批量请求

        Raises:
            InputError: 域名列表缺失、为空或超过上限
        """
        if not isinstance(domains, list) or not domains:
            raise InputError('Please provide an array of domains', code='DOMAINS_REQUIRED')
        if len(domains) > self.max_domains:
            raise InputError(
                f"Maximum {self.max_domains} domains allowed per request",
                code='TOO_MANY_DOMAINS',
            )
        return domains

    async def check_domains(self, domains: Any) -> List[CertificateVerdict]:
        """
        并发检查多个域名

        结果与输入顺序一一对应；单个域名的失败只影响它自己的结论。

        Args:
            domains: 域名列表

        Returns:
            List[CertificateVerdict]: 检查结论列表
        """
        domains = self.validate_request(domains)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _run_one(domain: Any) -> CertificateVerdict:
            # 与单域名接口使用相同的校验，无效条目转换为该条目的失败结论
            host = self.checker.normalizer.require_valid(domain)
            async with semaphore:
                return await self.checker.check_certificate(host)

        if self.logger_service:
            self.logger_service.log_check_start(len(domains))

        results = await asyncio.gather(
            *(_run_one(domain) for domain in domains),
            return_exceptions=True,
        )

        verdicts = []
        for domain, result in zip(domains, results):
            if isinstance(result, BaseException):
                verdict = self._failed_verdict(domain, result)
            else:
                verdict = result
            if self.logger_service:
                self.logger_service.log_verdict(verdict)
            verdicts.append(verdict)

        if self.logger_service:
            self.logger_service.log_check_end()

        return verdicts

    async def check_reports(self, domains: Any) -> List[CertificateReport]:
        """并发检查多个域名并生成报告"""
        verdicts = await self.check_domains(domains)
        return [self.checker.report_for(verdict) for verdict in verdicts]

    def _failed_verdict(self, domain: Any, error: BaseException) -> CertificateVerdict:
        label = domain.strip() if isinstance(domain, str) else str(domain)
        if isinstance(domain, str) and domain.strip():
            label = self.checker.normalizer.normalize(domain.strip())

        if isinstance(error, InputError):
            self.logger.warning(f"跳过无效域名: {domain!r} ({error.message})")
        else:
            self.logger.error(f"检查域名 {label} 时发生错误: {type(error).__name__}: {str(error)}")
            if self.logger_service:
                self.logger_service.log_error(label, error)

        return self.checker.assembler.failed(label, error)
