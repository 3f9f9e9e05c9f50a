"""
错误处理服务

定义证书检查的错误分类，并把底层网络/TLS异常归类为这些错误。
除 InputError 外，所有错误都在管道内部被转换为检查结论。
"""
import asyncio
import socket
import ssl
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging


class CertificateCheckError(Exception):
    """证书检查错误基类"""

    code = 'CHECK_ERROR'

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class InputError(CertificateCheckError):
    """输入错误：域名缺失或无法解析（在任何网络I/O之前抛出）"""

    code = 'DOMAIN_REQUIRED'


class ProbeConnectionError(CertificateCheckError):
    """连接错误：DNS解析失败、连接被拒绝或重置"""

    code = 'CONNECTION_FAILED'


class ProbeTimeoutError(CertificateCheckError):
    """连接超时"""

    code = 'CONNECTION_TIMEOUT'

    def __init__(self, message: str = 'Connection timeout', code: Optional[str] = None):
        super().__init__(message, code)


class CertificateValidationError(CertificateCheckError):
    """严格模式握手拒绝了证书"""

    code = 'CERTIFICATE_INVALID'


class ExtractionError(CertificateCheckError):
    """证书字段格式错误"""

    code = 'EXTRACTION_FAILED'


class UnexpectedCheckError(CertificateCheckError):
    """未预期的错误"""

    code = 'UNEXPECTED_ERROR'


class ProbeErrorHandler:
    """TLS探测错误处理器"""

    # 主机名与证书不匹配时，各TLS实现给出的错误信息片段
    HOSTNAME_MISMATCH_MARKERS = (
        'altnames',
        'hostname mismatch',
        "doesn't match",
        'does not match',
        'not valid for',
    )

    def __init__(self):
        """初始化TLS探测错误处理器"""
        self.logger = logging.getLogger(__name__)

    def is_timeout(self, error: BaseException) -> bool:
        """判断是否为超时错误"""
        return isinstance(error, (asyncio.TimeoutError, socket.timeout, ProbeTimeoutError))

    def is_validation_error(self, error: BaseException) -> bool:
        """
        判断是否为证书验证错误

        Args:
            error: 异常对象

        Returns:
            bool: 严格模式是否因证书本身被拒绝
        """
        if isinstance(error, CertificateValidationError):
            return True
        if isinstance(error, (ssl.SSLCertVerificationError, ssl.CertificateError)):
            return True
        if isinstance(error, ssl.SSLError):
            return 'certificate verify failed' in str(error).lower()
        return False

    def is_hostname_mismatch(self, message: Optional[str]) -> bool:
        """判断错误信息是否表示主机名/SAN不匹配"""
        if not message:
            return False
        lowered = message.lower()
        return any(marker in lowered for marker in self.HOSTNAME_MISMATCH_MARKERS)

    def describe_validation_error(self, error: BaseException) -> str:
        """
        获取证书验证失败的可读描述

        Args:
            error: 严格模式握手抛出的异常

        Returns:
            str: 错误描述
        """
        verify_message = getattr(error, 'verify_message', None)
        if verify_message:
            return f"Certificate validation failed: {verify_message}"
        message = str(error) or type(error).__name__
        return f"Certificate validation failed: {message}"

    def describe_connection_error(self, error: BaseException) -> str:
        """
        获取连接失败的可读描述

        Args:
            error: 异常对象

        Returns:
            str: 错误描述
        """
        if self.is_timeout(error):
            return 'Connection timeout'
        if isinstance(error, socket.gaierror):
            return f"Could not establish connection: DNS lookup failed ({error})"
        message = str(error) or type(error).__name__
        return f"Could not establish connection: {message}"

    def classify(self, error: BaseException) -> CertificateCheckError:
        """
        将底层异常归类为证书检查错误

        Args:
            error: 异常对象

        Returns:
            CertificateCheckError: 归类后的错误
        """
        if isinstance(error, CertificateCheckError):
            return error
        if self.is_timeout(error):
            return ProbeTimeoutError()
        if self.is_validation_error(error):
            return CertificateValidationError(self.describe_validation_error(error))
        if isinstance(error, (OSError, ssl.SSLError, EOFError)):
            return ProbeConnectionError(self.describe_connection_error(error))
        return UnexpectedCheckError(str(error) or type(error).__name__)

    def handle_probe_error(self, domain: str, attempt: str, error: BaseException) -> Dict[str, Any]:
        """
        处理一次探测尝试的错误

        Args:
            domain: 域名
            attempt: 尝试模式（strict / fallback）
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误处理结果
        """
        classified = self.classify(error)
        error_info = {
            'domain': domain,
            'attempt': attempt,
            'error_type': type(error).__name__,
            'error_code': classified.code,
            'error_message': classified.message,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self._get_suggested_action(error),
        }

        if isinstance(classified, CertificateValidationError):
            self.logger.info(f"域名 {domain} {attempt} 模式证书验证失败: {classified.message}")
        else:
            self.logger.warning(f"域名 {domain} {attempt} 模式连接失败: {classified.message}")

        return error_info

    def _get_suggested_action(self, error: BaseException) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        error_message = str(error).lower()

        if self.is_timeout(error):
            return "检查网络连接，考虑增加超时时间"
        elif isinstance(error, socket.gaierror):
            return "检查域名是否正确，DNS服务器是否可用"
        elif isinstance(error, ConnectionRefusedError):
            return "检查目标服务器是否运行，443端口是否开放"
        elif isinstance(error, (ssl.SSLCertVerificationError, ssl.CertificateError)):
            if self.is_hostname_mismatch(error_message):
                return "证书与域名不匹配，检查证书的SAN列表"
            if 'expired' in error_message:
                return "证书已过期，尽快续期"
            return "证书验证失败，可能是自签名证书或证书链问题"
        elif isinstance(error, ssl.SSLError):
            if 'handshake failure' in error_message:
                return "SSL握手失败，检查SSL/TLS版本兼容性"
            return "SSL连接问题，检查服务器SSL配置"
        elif 'network is unreachable' in error_message:
            return "网络不可达，检查网络连接和路由"
        else:
            return "检查网络连接和服务器状态"
