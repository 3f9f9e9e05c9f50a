"""
域名规范化服务
"""
import ipaddress
import re
from typing import Any
from urllib.parse import urlparse
import logging

from .error_handler import InputError


class DomainNormalizer:
    """域名规范化器"""

    def __init__(self):
        """初始化域名规范化器"""
        self.logger = logging.getLogger(__name__)

        # 域名格式验证正则表达式
        self.domain_pattern = re.compile(
            r'^(?:[a-zA-Z0-9_](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,63}$'
        )

    def normalize(self, domain: str) -> str:
        """
        从用户输入中提取主机名

        带协议的输入按URL解析取主机名；不带协议但包含路径的输入取第一个"/"之前的部分；
        其余原样返回。解析失败时原样返回，由调用方决定是否拒绝。

        Args:
            domain: 原始输入

        Returns:
            str: 主机名
        """
        try:
            if '://' in domain:
                hostname = urlparse(domain).hostname
                if not hostname:
                    self.logger.debug(f"无法从 {domain} 中解析主机名，原样返回")
                    return domain
                return hostname
            if '/' in domain:
                return domain.split('/', 1)[0]
            return domain
        except ValueError as e:
            self.logger.debug(f"解析 {domain} 失败: {str(e)}，原样返回")
            return domain

    def require(self, domain: Any) -> str:
        """
        校验输入非空并规范化

        Args:
            domain: 原始输入

        Returns:
            str: 主机名

        Raises:
            InputError: 域名缺失
        """
        if not isinstance(domain, str) or not domain.strip():
            raise InputError('Domain parameter is required', code='DOMAIN_REQUIRED')
        return self.normalize(domain.strip())

    def validate_domain(self, domain: str) -> bool:
        """
        验证主机名格式（域名或IP地址）

        Args:
            domain: 要验证的主机名

        Returns:
            bool: 主机名是否有效
        """
        if not domain or not isinstance(domain, str):
            return False

        if len(domain) > 253:
            return False

        try:
            ipaddress.ip_address(domain)
            return True
        except ValueError:
            pass

        if domain.startswith('.') or domain.endswith('.'):
            return False

        return bool(self.domain_pattern.match(domain))

    def require_valid(self, domain: Any) -> str:
        """
        规范化并验证主机名

        Raises:
            InputError: 域名缺失或格式无效
        """
        host = self.require(domain)
        if not self.validate_domain(host):
            raise InputError(f"Invalid domain: {domain}", code='INVALID_DOMAIN')
        return host
