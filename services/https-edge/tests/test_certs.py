import ssl
import stat

from https_edge.certs import generate_self_signed, main


def test_generated_pair_loads_into_server_context(tmp_path):
    cert_file, key_file = generate_self_signed(tmp_path / "c.pem", tmp_path / "k.pem", hosts=["localhost"])
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    ctx.load_cert_chain(certfile=str(cert_file), keyfile=str(key_file))
    assert stat.S_IMODE(key_file.stat().st_mode) == 0o600


def test_cli_writes_default_names(tmp_path, capsys):
    assert main(["--out-dir", str(tmp_path / "out"), "--host", "edge.test"]) == 0
    assert (tmp_path / "out" / "cert.pem").read_bytes().startswith(b"-----BEGIN CERTIFICATE-----")
    assert (tmp_path / "out" / "key.pem").exists()
    assert "Wrote" in capsys.readouterr().out
