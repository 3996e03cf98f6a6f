"""Shared pytest fixtures for dockwire tests."""

import socket
import struct

import pytest

from dockwire.docker_api import DockerClient
from dockwire.docker_api.http_client import DockerHTTPClient


class FakeDaemon:
    """Daemon side of a socket pair; the client side is handed to the transport."""

    def __init__(self):
        self.client_sock, self.server_sock = socket.socketpair()
        self.server_sock.settimeout(5)

    def send(self, data: bytes):
        self.server_sock.sendall(data)

    def close(self):
        self.server_sock.shutdown(socket.SHUT_WR)

    def respond(self, data: bytes):
        """Queue a full response and signal EOF"""
        self.send(data)
        self.close()

    def read_request(self) -> bytes:
        """Read the request head (and any body sent with it)"""
        data = b''
        while b'\r\n\r\n' not in data:
            chunk = self.server_sock.recv(4096)
            if not chunk:
                break
            data += chunk
        return data

    def read_all(self) -> bytes:
        """Read everything the client sent until it closed its side"""
        data = b''
        while True:
            chunk = self.server_sock.recv(4096)
            if not chunk:
                return data
            data += chunk

    def shutdown(self):
        for sock in (self.client_sock, self.server_sock):
            try:
                sock.close()
            except OSError:
                pass


@pytest.fixture
def daemon():
    fake = FakeDaemon()
    yield fake
    fake.shutdown()


@pytest.fixture
def http(daemon, monkeypatch) -> DockerHTTPClient:
    """Transport wired to the fake daemon"""
    client = DockerHTTPClient('/nonexistent/docker.sock')
    monkeypatch.setattr(client, '_connect', lambda: daemon.client_sock)
    return client


@pytest.fixture
def docker_client(http) -> DockerClient:
    """DockerClient whose transport talks to the fake daemon"""
    client = DockerClient('/nonexistent/docker.sock')
    client.http = http
    return client


def frame(stream: int, payload: bytes) -> bytes:
    """Build one multiplexed log frame"""
    return struct.pack('>BxxxL', stream, len(payload)) + payload


def chunked(*chunks: bytes) -> bytes:
    """Encode chunks with chunked transfer-encoding, including the final zero chunk"""
    body = b''.join(b'%x\r\n%s\r\n' % (len(c), c) for c in chunks)
    return body + b'0\r\n\r\n'
