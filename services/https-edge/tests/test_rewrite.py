import pytest

from https_edge.config import PortPair
from https_edge.errors import InvalidAuthority, RewriteError, UriAssembly
from https_edge.rewrite import parse_authority, path_and_query, rewrite

PORTS = PortPair(plain=7878, secure=3000)


def test_port_substituted():
    assert rewrite("example.com:7878", "/", PORTS) == "https://example.com:3000/"


def test_host_without_port_is_unchanged():
    assert rewrite("example.com", "/docs", PORTS) == "https://example.com/docs"


def test_empty_target_defaults_to_root():
    assert rewrite("example.com:7878", "", PORTS) == "https://example.com:3000/"
    assert rewrite("example.com:7878", None, PORTS) == "https://example.com:3000/"


@pytest.mark.parametrize(
    "target",
    ["/a/b/c", "/search?q=hello&lang=en", "/encoded%20path/%2F?x=%41", "/trailing/", "/?only=query"],
)
def test_path_and_query_preserved(target):
    assert rewrite("example.com:7878", target, PORTS) == "https://example.com:3000" + target


def test_rewrite_is_idempotent_once_port_is_gone():
    first = rewrite("example.com:7878", "/x?y=1", PORTS)
    authority = first[len("https://"):].split("/", 1)[0]
    second = rewrite(authority, "/x?y=1", PORTS)
    assert second == first


def test_absolute_form_target_keeps_only_path_and_query():
    assert rewrite("example.com:7878", "http://example.com:7878/a?b=1", PORTS) == "https://example.com:3000/a?b=1"
    assert path_and_query("http://example.com:7878") == "/"
    assert path_and_query("http://example.com?x=1") == "/?x=1"


def test_ipv4_and_ipv6_hosts():
    assert rewrite("127.0.0.1:7878", "/", PORTS) == "https://127.0.0.1:3000/"
    assert rewrite("[::1]:7878", "/", PORTS) == "https://[::1]:3000/"


def test_substring_mode_touches_hostnames_containing_port_digits():
    assert rewrite("host7878.example.com:7878", "/", PORTS) == "https://host3000.example.com:3000/"


def test_structural_mode_only_replaces_port_field():
    assert rewrite("host7878.example.com:7878", "/", PORTS, mode="structural") == "https://host7878.example.com:3000/"
    assert rewrite("host7878.example.com", "/", PORTS, mode="structural") == "https://host7878.example.com/"
    assert rewrite("example.com:8080", "/", PORTS, mode="structural") == "https://example.com:8080/"


def test_whitespace_in_host_is_invalid_authority():
    with pytest.raises(InvalidAuthority) as excinfo:
        rewrite("exa mple.com:7878", "/", PORTS)
    assert isinstance(excinfo.value.cause, ValueError)
    assert excinfo.value.host == "exa mple.com:3000"
    assert "not allowed" in str(excinfo.value)


@pytest.mark.parametrize("host", ["", "example.com:99999", "example.com:80a", "[not-ipv6]:7878", "a/b:7878", "ex@mple@x.com"])
def test_malformed_hosts(host):
    with pytest.raises(InvalidAuthority):
        rewrite(host, "/", PORTS)


@pytest.mark.parametrize("target", ["*", "no-leading-slash", "/with space", "/frag#ment", "/café"])
def test_unassemblable_targets(target):
    with pytest.raises(UriAssembly) as excinfo:
        rewrite("example.com:7878", target, PORTS)
    assert isinstance(excinfo.value, RewriteError)


def test_parse_authority_parts():
    auth = parse_authority("user:pw@example.com:3000")
    assert auth.userinfo == "user:pw"
    assert auth.host == "example.com"
    assert auth.port == 3000
    assert str(auth) == "user:pw@example.com:3000"
    assert parse_authority("example.com").port is None


def test_unknown_mode_rejected():
    with pytest.raises(ValueError):
        rewrite("example.com", "/", PORTS, mode="regex")
