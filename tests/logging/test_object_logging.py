import json
import logging

import pytest

from korc._cogs.configs.configuration import LoggingSettings
from korc._core.actions.loggers import LogFormat, ObjectJsonFormatter, ObjectLogger, \
                                       ObjectPrefixingJsonFormatter, \
                                       ObjectPrefixingTextFormatter, ObjectTextFormatter, \
                                       _KorcStreamHandler, configure, make_formatter

BODY = {
    'apiVersion': 'korc.dev/v1alpha1',
    'kind': 'Trunk',
    'metadata': {'namespace': 'ns', 'name': 'trunk-a', 'uid': 'uid-1'},
}


@pytest.fixture()
def record_factory():
    def make(msg, level=logging.INFO, **extra):
        record = logging.LogRecord('korc.objects', level, __file__, 1, msg, None, None)
        record.__dict__.update(extra)
        return record
    return make


def test_object_logger_adds_the_reference(caplog):
    caplog.set_level(logging.DEBUG)
    logger = ObjectLogger(body=BODY)
    logger.info("hello", extra={'custom': 1})
    record = caplog.records[-1]
    assert record.name == 'korc.objects'
    assert record.getMessage() == "hello"
    assert record.custom == 1
    assert record.k8s_ref == {
        'apiVersion': 'korc.dev/v1alpha1',
        'kind': 'Trunk',
        'name': 'trunk-a',
        'uid': 'uid-1',
        'namespace': 'ns',
    }


def test_object_logger_copies_the_identity(caplog):
    caplog.set_level(logging.DEBUG)
    body = {'metadata': {'namespace': 'ns', 'name': 'trunk-a'}}
    logger = ObjectLogger(body=body)
    body['metadata']['name'] = 'renamed'
    logger.info("hello")
    assert caplog.records[-1].k8s_ref['name'] == 'trunk-a'


@pytest.mark.parametrize('log_format, log_prefix, cls', [
    pytest.param(LogFormat.PLAIN, None, ObjectPrefixingTextFormatter, id='plain-default'),
    pytest.param(LogFormat.FULL, False, ObjectTextFormatter, id='full-unprefixed'),
    pytest.param(LogFormat.JSON, None, ObjectJsonFormatter, id='json-default'),
    pytest.param(LogFormat.JSON, True, ObjectPrefixingJsonFormatter, id='json-prefixed'),
    pytest.param('%(message)s', True, ObjectPrefixingTextFormatter, id='custom'),
])
def test_formatter_selection(log_format, log_prefix, cls):
    formatter = make_formatter(log_format=log_format, log_prefix=log_prefix)
    assert type(formatter) is cls


def test_unsupported_format():
    with pytest.raises(ValueError):
        make_formatter(log_format=123)


def test_text_prefix(record_factory):
    formatter = make_formatter(LogFormat.PLAIN, log_prefix=True)
    record = record_factory("hello", k8s_ref={'namespace': 'ns', 'name': 'trunk-a'})
    assert formatter.format(record) == "[ns/trunk-a] hello"
    assert record.msg == "hello"


def test_text_prefix_of_cluster_objects(record_factory):
    formatter = make_formatter(LogFormat.PLAIN, log_prefix=True)
    record = record_factory("hello", k8s_ref={'name': 'node-a'})
    assert formatter.format(record) == "[node-a] hello"


def test_text_without_references(record_factory):
    formatter = make_formatter(LogFormat.PLAIN, log_prefix=True)
    assert formatter.format(record_factory("hello")) == "hello"


@pytest.mark.parametrize('level, severity', [
    pytest.param(logging.DEBUG, 'debug', id='debug'),
    pytest.param(logging.INFO, 'info', id='info'),
    pytest.param(logging.WARNING, 'warn', id='warning'),
    pytest.param(logging.ERROR, 'error', id='error'),
    pytest.param(logging.CRITICAL, 'fatal', id='critical'),
])
def test_json_fields(record_factory, level, severity):
    formatter = make_formatter(LogFormat.JSON, log_refkey='k8s')
    record = record_factory("hello", level=level, k8s_ref={'namespace': 'ns', 'name': 'trunk-a'})
    data = json.loads(formatter.format(record))
    assert data['message'] == "hello"
    assert data['severity'] == severity
    assert data['k8s'] == {'namespace': 'ns', 'name': 'trunk-a'}
    assert 'k8s_ref' not in data
    assert 'timestamp' in data


def test_json_default_refkey(record_factory):
    formatter = make_formatter(LogFormat.JSON)
    record = record_factory("hello", k8s_ref={'name': 'trunk-a'})
    data = json.loads(formatter.format(record))
    assert data['object'] == {'name': 'trunk-a'}


def test_configure_replaces_own_handlers():
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)
    try:
        configure(LoggingSettings(format='json', level='debug'))
        configure(LoggingSettings(format='plain', level='warning'))
        ours = [h for h in root.handlers if isinstance(h, _KorcStreamHandler)]
        assert len(ours) == 1
        assert type(ours[0].formatter) is ObjectPrefixingTextFormatter
        assert root.level == logging.WARNING
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
        logging.getLogger('asyncio').propagate = True
        logging.getLogger('asyncio').handlers[:] = []
