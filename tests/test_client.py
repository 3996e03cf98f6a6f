"""Tests for the Docker API client and its collections."""

import json
import threading
from unittest.mock import MagicMock
from urllib.parse import quote

import pytest

from conftest import chunked, frame
from dockwire.docker_api import DockerClient, OperationFailure
from dockwire.docker_api.containers import (
    ContainerData,
    extract_compose_info,
    extract_container_name,
    format_ports,
)
from dockwire.docker_api.exceptions import HttpError
from dockwire.docker_api.images import ImageData, parse_repo_tag
from dockwire.docker_api.log_frames import STREAM_STDERR, STREAM_STDOUT

COMPOSE_LABELS = {
    'com.docker.compose.project': 'shop',
    'com.docker.compose.service': 'db',
    'com.docker.compose.project.working_dir': '/srv/shop',
    'com.docker.compose.project.config_files': '/srv/shop/compose.yml',
    'com.docker.compose.container-number': '2',
}


@pytest.fixture
def mock_client():
    client = DockerClient('/nonexistent/docker.sock')
    client.http = MagicMock()
    return client


# -- normalization --


@pytest.mark.parametrize('repo_tag, expected', [
    ('nginx:latest', ('nginx', 'latest')),
    ('nginx', ('nginx', 'latest')),
    ('library/redis:7-alpine', ('library/redis', '7-alpine')),
    ('localhost:5000/app:v2', ('localhost:5000/app', 'v2')),
    ('localhost:5000/app', ('localhost:5000/app', 'latest')),
    ('<none>:<none>', ('<none>', '<none>')),
])
def test_parse_repo_tag(repo_tag, expected):
    assert parse_repo_tag(repo_tag) == expected


def test_extract_container_name():
    assert extract_container_name(['/web', '/alias']) == 'web'
    assert extract_container_name(['plain']) == 'plain'
    assert extract_container_name([]) == 'unknown'


def test_extract_compose_info():
    info = extract_compose_info(COMPOSE_LABELS)
    assert info.project == 'shop'
    assert info.service == 'db'
    assert info.working_dir == '/srv/shop'
    assert info.config_files == '/srv/shop/compose.yml'
    assert info.container_number == 2


def test_extract_compose_info_requires_project_and_service():
    assert extract_compose_info({'com.docker.compose.project': 'shop'}) is None
    assert extract_compose_info({}) is None
    assert extract_compose_info(None) is None


def test_extract_compose_info_non_numeric_container_number():
    labels = dict(COMPOSE_LABELS, **{'com.docker.compose.container-number': 'two'})
    assert extract_compose_info(labels).container_number is None


def test_format_ports():
    ports = [
        {'PrivatePort': 80, 'PublicPort': 8080, 'Type': 'tcp'},
        {'PrivatePort': 53, 'Type': 'udp'},
    ]
    assert format_ports(ports) == ['8080:80/tcp', '53/udp']
    assert format_ports(None) == []


def test_container_data():
    container = ContainerData({
        'Id': 'a1b2c3d4e5f6a7b8c9d0',
        'Names': ['/shop-db-2'],
        'Image': 'postgres:16',
        'State': 'running',
        'Status': 'Up 2 hours',
        'Labels': COMPOSE_LABELS,
        'Ports': [{'PrivatePort': 5432, 'Type': 'tcp'}],
        'Created': 1700000000,
    })
    assert container.short_id == 'a1b2c3d4e5f6'
    assert container.name == 'shop-db-2'
    assert container.is_running
    assert container.is_compose
    assert container.compose_info.service == 'db'
    assert container.ports == ['5432/tcp']


def test_image_data():
    image = ImageData({
        'Id': 'sha256:0123456789abcdef0123',
        'RepoTags': ['localhost:5000/app:v2', 'app:latest'],
        'Size': 2048,
        'Created': 1700000000,
        'Containers': 3,
    })
    assert image.short_id == '0123456789ab'
    assert (image.name, image.tag) == ('localhost:5000/app', 'v2')
    assert image.in_use


def test_image_data_untagged():
    image = ImageData({'Id': 'sha256:abc', 'RepoTags': None, 'Containers': 0})
    assert (image.name, image.tag) == ('<none>', '<none>')
    assert not image.in_use


# -- request routing --


def test_list_containers(mock_client):
    mock_client.http.get.return_value = [{'Id': 'abc', 'Names': ['/web'], 'State': 'exited'}]
    containers = mock_client.containers.list()
    mock_client.http.get.assert_called_once_with('/containers/json', params={'all': True})
    assert [c.name for c in containers] == ['web']
    assert not containers[0].is_running


def test_inspect_container_with_size(mock_client):
    mock_client.http.get.return_value = {'Id': 'abc'}
    assert mock_client.containers.inspect('abc', size=True) == {'Id': 'abc'}
    mock_client.http.get.assert_called_once_with('/containers/abc/json', params={'size': True})


def test_lifecycle_operations(mock_client):
    mock_client.containers.start('abc')
    mock_client.containers.stop('abc', timeout=5)
    mock_client.containers.restart('abc')
    mock_client.http.post.assert_any_call('/containers/abc/start')
    mock_client.http.post.assert_any_call('/containers/abc/stop', params={'t': 5})
    mock_client.http.post.assert_any_call('/containers/abc/restart', params={'t': None})


def test_remove_container_force(mock_client):
    mock_client.containers.remove('abc')
    mock_client.http.delete.assert_called_with('/containers/abc', params=None)
    mock_client.containers.remove('abc', force=True)
    mock_client.http.delete.assert_called_with('/containers/abc', params={'force': True})


def test_remove_image_force(mock_client):
    mock_client.images.remove('nginx:latest', force=True)
    mock_client.http.delete.assert_called_once_with('/images/nginx:latest', params={'force': True})


def test_system_endpoints(mock_client):
    mock_client.http.get.return_value = {'Volumes': []}
    assert mock_client.system_data_usage() == {'Volumes': []}
    mock_client.version()
    mock_client.info()
    paths = [c.args[0] for c in mock_client.http.get.call_args_list]
    assert paths == ['/system/df', '/version', '/info']


# -- error wrapping --


def test_operation_failure_names_operation_and_cause(mock_client):
    mock_client.http.get.side_effect = HttpError(404, '{"message":"No such container: abc"}')
    with pytest.raises(OperationFailure) as exc_info:
        mock_client.containers.inspect('abc')
    error = exc_info.value
    assert str(error) == 'Failed to inspect container abc: HTTP error 404: {"message":"No such container: abc"}'
    assert isinstance(error.cause, HttpError)
    assert error.cause.status_code == 404


def test_operation_failure_without_resource_id(mock_client):
    mock_client.http.get.side_effect = ConnectionRefusedError('refused')
    with pytest.raises(OperationFailure, match='^Failed to list containers: refused$'):
        mock_client.containers.list()


def test_operation_failure_on_invalid_json(mock_client):
    mock_client.http.get.side_effect = json.JSONDecodeError('Expecting value', '', 0)
    with pytest.raises(OperationFailure, match='Failed to get system data usage'):
        mock_client.system_data_usage()


def test_remove_image_failure(mock_client):
    mock_client.http.delete.side_effect = HttpError(409, 'conflict')
    with pytest.raises(OperationFailure, match='^Failed to remove image nginx: HTTP error 409: conflict$'):
        mock_client.images.remove('nginx')


# -- over the fake daemon --


def test_list_containers_end_to_end(docker_client, daemon):
    body = json.dumps([{'Id': 'abc123', 'Names': ['/web'], 'State': 'running'}]).encode()
    daemon.respond(b'HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n' + chunked(body[:10], body[10:]))
    containers = docker_client.containers.list(all=False)
    assert containers[0].name == 'web'
    assert daemon.read_all().startswith(b'GET /containers/json?all=false HTTP/1.1\r\n')


def test_logs_snapshot_multiplexed(docker_client, daemon):
    body = frame(STREAM_STDOUT, b'out\n') + frame(STREAM_STDERR, b'err\n')
    daemon.respond(b'HTTP/1.1 200 OK\r\n\r\n' + body)
    assert docker_client.containers.logs('abc', tail=10) == 'out\nerr\n'
    sent = daemon.read_all()
    assert b'/containers/abc/logs?stdout=true&stderr=true&tail=10 ' in sent


def test_logs_snapshot_tty(docker_client, daemon):
    daemon.respond(b'HTTP/1.1 200 OK\r\n\r\nplain tty output\n')
    assert docker_client.containers.logs('abc') == 'plain tty output\n'


def test_stream_logs_end_to_end(docker_client, daemon):
    lines = []
    closed = threading.Event()
    # Each frame is one line; chunk boundaries cut through frames
    frames = frame(STREAM_STDOUT, b'first\n') + frame(STREAM_STDOUT, b'second\n') + frame(STREAM_STDERR, b'oops\n')
    body = chunked(frames[:5], frames[5:20], frames[20:])
    daemon.send(b'HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n')
    handle = docker_client.containers.stream_logs(
        'abc', lambda text, stream: lines.append((text, stream)), on_close=closed.set, tail=5
    )
    daemon.send(body)
    daemon.close()

    assert closed.wait(5)
    assert handle.join(5)
    assert lines == [('first', 'stdout'), ('second', 'stdout'), ('oops', 'stderr')]
    sent = daemon.read_request()
    assert b'follow=true' in sent
    assert b'tail=5' in sent


def test_stream_logs_http_error_is_wrapped(docker_client, daemon):
    errors = []
    daemon.respond(b'HTTP/1.1 404 Not Found\r\n\r\n{"message":"No such container: abc"}')
    with pytest.raises(OperationFailure, match='^Failed to stream logs for container abc'):
        docker_client.containers.stream_logs('abc', lambda text, stream: None, on_error=errors.append)
    assert len(errors) == 1
    assert isinstance(errors[0], OperationFailure)
    assert isinstance(errors[0].cause, HttpError)


def test_stream_events_with_filters(docker_client, daemon):
    events = []
    closed = threading.Event()
    filters = {'container': ['abc'], 'type': ['container']}
    daemon.send(b'HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n')
    handle = docker_client.stream_events(events.append, on_close=closed.set, filters=filters)

    sent = daemon.read_request()
    expected = quote(json.dumps(filters, separators=(',', ':')), safe='')
    assert sent.startswith(f'GET /events?filters={expected} HTTP/1.1\r\n'.encode())

    line = json.dumps({'Type': 'container', 'Action': 'die', 'Actor': {'ID': 'abc'}}).encode() + b'\n'
    daemon.send(chunked(line[:15], line[15:]))
    daemon.close()

    assert closed.wait(5)
    assert handle.join(5)
    assert [(e.type, e.action, e.actor_id) for e in events] == [('container', 'die', 'abc')]
