"""
域名规范化器测试
"""
import pytest

from ssl_certificate_inspector.services.domain_normalizer import DomainNormalizer
from ssl_certificate_inspector.services.error_handler import InputError


class TestDomainNormalizer:
    """域名规范化器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.normalizer = DomainNormalizer()

    def test_normalize_url_with_scheme(self):
        """测试带协议的URL取主机名"""
        assert self.normalizer.normalize("https://example.com/path") == "example.com"
        assert self.normalizer.normalize("http://example.com") == "example.com"
        assert self.normalizer.normalize("https://example.com:8443/a/b?q=1") == "example.com"
        assert self.normalizer.normalize("HTTPS://Sub.Example.COM/") == "sub.example.com"

    def test_normalize_path_without_scheme(self):
        """测试不带协议但包含路径的输入"""
        assert self.normalizer.normalize("example.com/foo") == "example.com"
        assert self.normalizer.normalize("example.com/foo/bar") == "example.com"

    def test_normalize_bare_host_unchanged(self):
        """测试纯主机名原样返回"""
        assert self.normalizer.normalize("example.com") == "example.com"
        assert self.normalizer.normalize("example.com:443") == "example.com:443"

    def test_normalize_unparsable_returns_input(self):
        """测试解析失败时原样返回"""
        assert self.normalizer.normalize("https://[::1") == "https://[::1"
        assert self.normalizer.normalize("mailto://") == "mailto://"

    def test_require_missing_domain(self):
        """测试缺少域名"""
        for value in (None, "", "   ", 42):
            with pytest.raises(InputError) as exc_info:
                self.normalizer.require(value)
            assert exc_info.value.code == 'DOMAIN_REQUIRED'

    def test_require_strips_and_normalizes(self):
        """测试去除空白并规范化"""
        assert self.normalizer.require("  https://example.com/x  ") == "example.com"

    def test_validate_domain(self):
        """测试主机名格式验证"""
        assert self.normalizer.validate_domain("example.com") is True
        assert self.normalizer.validate_domain("sub.example.co.uk") is True
        assert self.normalizer.validate_domain("192.0.2.10") is True
        assert self.normalizer.validate_domain("2001:db8::1") is True

        assert self.normalizer.validate_domain("") is False
        assert self.normalizer.validate_domain("localhost") is False
        assert self.normalizer.validate_domain(".example.com") is False
        assert self.normalizer.validate_domain("example.com:443") is False
        assert self.normalizer.validate_domain("exa mple.com") is False
        assert self.normalizer.validate_domain("a" * 250 + ".com") is False

    def test_require_valid_rejects_invalid(self):
        """测试无效主机名被拒绝"""
        with pytest.raises(InputError) as exc_info:
            self.normalizer.require_valid("not a domain")
        assert exc_info.value.code == 'INVALID_DOMAIN'

        assert self.normalizer.require_valid("https://example.com/login") == "example.com"
