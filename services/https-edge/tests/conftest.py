import threading
from contextlib import contextmanager

import pytest

from https_edge.certs import generate_self_signed
from https_edge.supervisor import EdgeSupervisor, bind_socket


@pytest.fixture(scope="session")
def cert_pair(tmp_path_factory):
    d = tmp_path_factory.mktemp("certs")
    return generate_self_signed(d / "cert.pem", d / "key.pem", hosts=["localhost", "127.0.0.1"], days=1)


@pytest.fixture
def loopback_sockets():
    socks = [bind_socket("127.0.0.1", 0), bind_socket("127.0.0.1", 0)]
    yield socks
    for s in socks:
        s.close()


@contextmanager
def _running_edge(config, prepare=None, **kwargs):
    supervisor = EdgeSupervisor(config, **kwargs)
    if prepare is not None:
        prepare(supervisor)
    errors = []

    def target():
        try:
            supervisor.run()
        except BaseException as exc:
            errors.append(exc)

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    try:
        assert supervisor.started.wait(10), f"edge did not start: {errors}"
        yield supervisor
    finally:
        supervisor.stop()
        thread.join(10)
    assert not thread.is_alive()
    assert not errors, errors


@pytest.fixture
def running_edge():
    """Context manager running an EdgeSupervisor in a background thread."""
    return _running_edge
