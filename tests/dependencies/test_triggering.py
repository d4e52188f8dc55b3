from korc._cogs.structs.bodies import ObjectKey


async def test_owners_are_enqueued_on_dependency_events(cluster, dependency, make_body):
    dependency.add_to_cluster(cluster)
    cluster.create(make_body('Trunk', 'trunk-a', spec={'resource': {'portRef': 'port-a'}}))
    cluster.create(make_body('Trunk', 'trunk-b', spec={'resource': {'portRef': 'port-b'}}))
    cluster.create(make_body('Trunk', 'trunk-c', spec={'resource': {'portRef': 'port-a'}}))
    handler = dependency.watch_event_handler(cluster)

    keys = await handler(make_body('Port', 'port-a'))
    assert keys == [ObjectKey('default', 'trunk-a'), ObjectKey('default', 'trunk-c')]


async def test_owners_of_list_fields_are_enqueued(cluster, list_dependency, make_body):
    list_dependency.add_to_cluster(cluster)
    cluster.create(make_body('Trunk', 'trunk-a', spec={'resource': {'subports': [
        {'portRef': 'port-a'},
        {'portRef': 'port-b'},
    ]}}))
    handler = list_dependency.watch_event_handler(cluster)

    keys = await handler(make_body('Port', 'port-b'))
    assert keys == [ObjectKey('default', 'trunk-a')]


async def test_index_follows_the_owners_changes(cluster, dependency, make_body):
    dependency.add_to_cluster(cluster)
    cluster.create(make_body('Trunk', 'trunk-a', spec={'resource': {'portRef': 'port-a'}}))
    handler = dependency.watch_event_handler(cluster)

    cluster.modify('Trunk', ObjectKey('default', 'trunk-a'), {'spec': {'resource': {'portRef': 'port-b'}}})
    assert await handler(make_body('Port', 'port-a')) == []
    assert await handler(make_body('Port', 'port-b')) == [ObjectKey('default', 'trunk-a')]

    cluster.delete('Trunk', ObjectKey('default', 'trunk-a'))
    assert await handler(make_body('Port', 'port-b')) == []


async def test_index_of_the_preexisting_owners(cluster, dependency, make_body):
    cluster.create(make_body('Trunk', 'trunk-a', spec={'resource': {'portRef': 'port-a'}}))
    dependency.add_to_cluster(cluster)
    handler = dependency.watch_event_handler(cluster)
    assert await handler(make_body('Port', 'port-a')) == [ObjectKey('default', 'trunk-a')]


async def test_unrelated_dependency_enqueues_nothing(cluster, dependency, make_body):
    dependency.add_to_cluster(cluster)
    cluster.create(make_body('Trunk', 'trunk-a', spec={'resource': {'portRef': 'port-a'}}))
    handler = dependency.watch_event_handler(cluster)
    assert await handler(make_body('Port', 'port-z')) == []
