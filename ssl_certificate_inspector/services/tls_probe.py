"""
双模式TLS探测服务

先以严格模式（完整证书链与主机名验证）连接；失败后再以不验证证书的模式连接，
仅用于观察服务器实际出示的证书，从而区分"证书无效"和"服务器不可达"。
"""
import asyncio
import ssl
from typing import Awaitable, Callable, List, Optional
import logging

from ..interfaces import TLSProbeInterface
from ..models import ProbeOutcome, ProbeStatus, TLSSession
from .error_handler import ProbeErrorHandler


TLSConnector = Callable[[str, int, ssl.SSLContext], Awaitable[TLSSession]]

logger = logging.getLogger(__name__)


def _chain_from_ssl_object(ssl_object) -> List[bytes]:
    """读取对端出示的证书链（DER格式，叶子证书在前）"""
    get_chain = getattr(ssl_object, 'get_unverified_chain', None)
    if get_chain is None:
        # Python 3.10-3.12 只在底层 _SSLSocket 上提供该方法
        get_chain = getattr(getattr(ssl_object, '_sslobj', None), 'get_unverified_chain', None)
    if get_chain is None:
        return []

    chain = get_chain() or []
    der_chain = []
    for cert in chain:
        if isinstance(cert, (bytes, bytearray)):
            der_chain.append(bytes(cert))
        else:
            der_chain.append(cert.public_bytes(ssl._ssl.ENCODING_DER))
    return der_chain


def session_from_ssl_object(ssl_object) -> TLSSession:
    """
    从SSL对象中读取握手结果

    Args:
        ssl_object: ssl.SSLObject 或 ssl.SSLSocket

    Returns:
        TLSSession: 会话信息
    """
    if ssl_object is None:
        return TLSSession(leaf=None)

    leaf = ssl_object.getpeercert(binary_form=True)
    chain = _chain_from_ssl_object(ssl_object)
    if leaf and not chain:
        chain = [leaf]

    return TLSSession(
        leaf=leaf or None,
        chain=chain,
        protocol=ssl_object.version(),
        cipher=ssl_object.cipher(),
    )


async def _close_writer(writer: asyncio.StreamWriter, timeout: float = 1.0):
    """关闭连接；关闭握手无法完成时直接中止套接字"""
    writer.close()
    try:
        await asyncio.wait_for(writer.wait_closed(), timeout)
    except (OSError, ssl.SSLError, asyncio.TimeoutError) as e:
        logger.debug(f"关闭TLS连接时发生错误: {type(e).__name__}: {str(e)}")
        writer.transport.abort()
    except asyncio.CancelledError:
        writer.transport.abort()
        raise


async def open_tls_session(host: str, port: int, context: ssl.SSLContext) -> TLSSession:
    """
    建立TLS连接并读取证书与会话参数，返回前关闭连接

    Args:
        host: 主机名
        port: 端口
        context: SSL上下文

    Returns:
        TLSSession: 会话信息
    """
    _, writer = await asyncio.open_connection(
        host=host, port=port, ssl=context, server_hostname=host
    )
    try:
        return session_from_ssl_object(writer.get_extra_info('ssl_object'))
    finally:
        await _close_writer(writer)


class DualModeTLSProbe(TLSProbeInterface):
    """双模式TLS探测器"""

    def __init__(
        self,
        connect: Optional[TLSConnector] = None,
        port: int = 443,
        strict_timeout: float = 8.0,
        fallback_timeout: float = 5.0,
        ca_file: Optional[str] = None,
    ):
        """
        初始化双模式TLS探测器

        Args:
            connect: TLS连接函数，测试时可替换为假实现
            port: SSL端口，默认443
            strict_timeout: 严格模式连接超时时间（秒）
            fallback_timeout: 备用模式连接超时时间（秒）
            ca_file: 严格模式使用的CA证书文件，默认使用系统信任库
        """
        self.connect = connect or open_tls_session
        self.port = port
        self.strict_timeout = strict_timeout
        self.fallback_timeout = fallback_timeout
        self.ca_file = ca_file
        self.logger = logging.getLogger(__name__)
        self.error_handler = ProbeErrorHandler()

    def _strict_context(self) -> ssl.SSLContext:
        return ssl.create_default_context(cafile=self.ca_file)

    def _permissive_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context

    async def _attempt(self, host: str, context: ssl.SSLContext, timeout: float) -> TLSSession:
        # 超时会取消挂起的连接，由 open_connection 中止底层套接字
        return await asyncio.wait_for(self.connect(host, self.port, context), timeout)

    async def probe(self, host: str) -> ProbeOutcome:
        """
        探测主机的TLS证书

        两次尝试严格按顺序进行，备用模式只在严格模式失败时才会发起。

        Args:
            host: 规范化后的主机名

        Returns:
            ProbeOutcome: 探测结果
        """
        try:
            session = await self._attempt(host, self._strict_context(), self.strict_timeout)
            self.logger.debug(f"域名 {host} 严格模式握手成功，协议: {session.protocol}")
            return ProbeOutcome(status=ProbeStatus.TRUSTED, session=session)
        except Exception as e:
            self.error_handler.handle_probe_error(host, 'strict', e)
            if self.error_handler.is_validation_error(e):
                strict_error = self.error_handler.describe_validation_error(e)
            else:
                strict_error = self.error_handler.describe_connection_error(e)

        try:
            session = await self._attempt(host, self._permissive_context(), self.fallback_timeout)
        except Exception as e:
            self.error_handler.handle_probe_error(host, 'fallback', e)
            return ProbeOutcome(
                status=ProbeStatus.UNREACHABLE,
                strict_error=strict_error,
                error=self.error_handler.describe_connection_error(e),
            )

        self.logger.debug(f"域名 {host} 备用模式握手成功，观察到的证书将标记为无效")
        return ProbeOutcome(
            status=ProbeStatus.UNTRUSTED,
            session=session,
            strict_error=strict_error,
        )
