from korc._cogs.clients.errors import RemoteError
from korc._core.actions.errors import GuardCheckError
from korc._core.reactor.reconciling import ReconcileResult

KIND = 'Widget'
FINALIZER = 'korc.dev/widget'
GUARD = 'korc.dev/gadget'
MANAGED = {'resource': {'size': 1}}


def bound_status(widget):
    return {'id': widget.id, 'conditions': [{'type': 'Available', 'status': 'True', 'reason': 'Success'}]}


async def test_remote_resource_is_deleted(controller, cluster, remote, make_widget):
    widget = remote.add('widget-a')
    key = make_widget(spec=MANAGED, status=bound_status(widget), finalizers=[FINALIZER])
    cluster.delete(KIND, key)

    result = await controller.reconcile(key)
    assert result == ReconcileResult()
    assert remote.calls == [('get', widget.id), ('delete', widget.id), ('get', widget.id)]
    assert cluster.read(KIND, key) is None


async def test_slow_deletion_is_waited_for(controller, cluster, remote, make_widget, conditions_of):
    remote.deletion_is_slow = True
    widget = remote.add('widget-a')
    key = make_widget(spec=MANAGED, status=bound_status(widget), finalizers=[FINALIZER])
    cluster.delete(KIND, key)

    result = await controller.reconcile(key)
    assert result == ReconcileResult(requeue_after=22)
    assert cluster.read(KIND, key)['metadata']['finalizers'] == [FINALIZER]
    assert conditions_of(key)['Progressing'] == ('True', 'Progressing')

    del remote.widgets[widget.id]
    remote.calls.clear()
    result = await controller.reconcile(key)
    assert result == ReconcileResult()
    assert remote.calls == [('get', widget.id)]
    assert cluster.read(KIND, key) is None


async def test_remote_deletion_failure_is_transient(controller, cluster, remote, make_widget, conditions_of):
    error = RemoteError("boom")
    remote.errors['delete'] = error
    widget = remote.add('widget-a')
    key = make_widget(spec=MANAGED, status=bound_status(widget), finalizers=[FINALIZER])
    cluster.delete(KIND, key)

    result = await controller.reconcile(key)
    assert result == ReconcileResult(error=error)
    assert widget.id in remote.widgets
    assert cluster.read(KIND, key)['metadata']['finalizers'] == [FINALIZER]
    assert conditions_of(key)['Progressing'] == ('True', 'TransientError')


async def test_already_gone_resource_is_released(controller, cluster, remote, make_widget):
    key = make_widget(spec=MANAGED, status={'id': 'w-gone'}, finalizers=[FINALIZER])
    cluster.delete(KIND, key)

    result = await controller.reconcile(key)
    assert result == ReconcileResult()
    assert remote.calls == [('get', 'w-gone')]
    assert cluster.read(KIND, key) is None


async def test_unbound_object_is_released(controller, cluster, remote, make_widget):
    key = make_widget(spec=MANAGED, finalizers=[FINALIZER])
    cluster.delete(KIND, key)

    result = await controller.reconcile(key)
    assert result == ReconcileResult()
    assert remote.calls == []
    assert cluster.read(KIND, key) is None


async def test_detached_resource_is_kept(controller, cluster, remote, make_widget):
    widget = remote.add('widget-a')
    spec = dict(MANAGED, managedOptions={'onDelete': 'detach'})
    key = make_widget(spec=spec, status=bound_status(widget), finalizers=[FINALIZER])
    cluster.delete(KIND, key)

    await controller.reconcile(key)
    assert remote.calls == []
    assert widget.id in remote.widgets
    assert cluster.read(KIND, key) is None


async def test_imported_resource_is_kept(controller, cluster, remote, make_widget):
    widget = remote.add('widget-a')
    key = make_widget(spec={'import': {'id': widget.id}}, status=bound_status(widget), finalizers=[FINALIZER])
    cluster.delete(KIND, key)

    await controller.reconcile(key)
    assert remote.calls == []
    assert cluster.read(KIND, key) is None


async def test_unmanaged_resource_is_kept(controller, cluster, remote, make_widget):
    widget = remote.add('widget-a')
    spec = dict(MANAGED, managementPolicy='unmanaged')
    key = make_widget(spec=spec, status=bound_status(widget), finalizers=[FINALIZER])
    cluster.delete(KIND, key)

    await controller.reconcile(key)
    assert remote.calls == []
    assert cluster.read(KIND, key) is None


async def test_foreign_finalizers_are_waited_for(controller, cluster, remote, make_widget, conditions_of):
    widget = remote.add('widget-a')
    key = make_widget(spec=MANAGED, status=bound_status(widget), finalizers=['example.com/x', FINALIZER])
    cluster.delete(KIND, key)

    result = await controller.reconcile(key)
    assert result == ReconcileResult(requeue_after=11)
    assert remote.calls == []
    assert cluster.read(KIND, key)['metadata']['finalizers'] == ['example.com/x', FINALIZER]
    message = cluster.read(KIND, key)['status']['conditions'][-1]['message']
    assert message == "Waiting for the finalizers to be removed: example.com/x"


async def test_objects_without_our_finalizer_are_ignored(controller, cluster, remote, make_widget):
    key = make_widget(spec=MANAGED, finalizers=['example.com/x'])
    cluster.delete(KIND, key)

    result = await controller.reconcile(key)
    assert result == ReconcileResult()
    assert cluster.read(KIND, key)['metadata']['finalizers'] == ['example.com/x']


async def test_referenced_object_is_not_deleted(controller, cluster, registry, remote, make_widget):
    references = {'exist': True}

    async def checker(client, dep):
        return references['exist']

    registry.register_guard(GUARD, KIND, checker)
    widget = remote.add('widget-a')
    key = make_widget(spec=MANAGED, status=bound_status(widget), finalizers=[GUARD, FINALIZER])
    cluster.delete(KIND, key)

    result = await controller.reconcile(key)
    assert result == ReconcileResult(requeue_after=11)
    assert remote.calls == []
    assert cluster.read(KIND, key)['metadata']['finalizers'] == [GUARD, FINALIZER]
    message = cluster.read(KIND, key)['status']['conditions'][-1]['message']
    assert message == "Waiting for Widget/widget-a to be no longer referenced"

    references['exist'] = False
    result = await controller.reconcile(key)
    assert result == ReconcileResult()
    assert remote.ops() == ['get', 'delete', 'get']
    assert cluster.read(KIND, key) is None


async def test_guard_failures_block_the_deletion(controller, cluster, registry, remote, make_widget):
    async def checker(client, dep):
        raise RuntimeError("boom")

    registry.register_guard(GUARD, KIND, checker)
    widget = remote.add('widget-a')
    key = make_widget(spec=MANAGED, status=bound_status(widget), finalizers=[GUARD, FINALIZER])
    cluster.delete(KIND, key)

    result = await controller.reconcile(key)
    assert isinstance(result.error, GuardCheckError)
    assert remote.calls == []
    assert cluster.read(KIND, key)['metadata']['finalizers'] == [GUARD, FINALIZER]


async def test_unguarded_finalizers_of_the_kind_are_released(controller, cluster, registry, remote, make_widget):
    async def checker(client, dep):
        return False

    registry.register_guard(GUARD, KIND, checker)
    key = make_widget(spec=MANAGED, finalizers=[GUARD])
    cluster.delete(KIND, key)

    result = await controller.reconcile(key)
    assert result == ReconcileResult()
    assert cluster.read(KIND, key) is None
