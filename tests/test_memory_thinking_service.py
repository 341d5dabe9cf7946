"""Tests for the request orchestrator."""
import json
import logging

import pytest

from memory_thinking.models.core import Entity, Relation
from memory_thinking.services.memory_thinking import MemoryThinkingService, format_thought
from memory_thinking.utils.config import ThinkingConfig


def _request(**overrides):
    request = {'thought': 'A', 'thoughtNumber': 1, 'totalThoughts': 3, 'nextThoughtNeeded': True}
    request.update(overrides)
    return request


def _payload(response):
    assert len(response['content']) == 1
    assert response['content'][0]['type'] == 'text'
    return json.loads(response['content'][0]['text'])


class TestProcess:
    """Tests for the five-step pipeline."""

    def test_store_in_memory_links_context_to_chain(self, service, graph_store, chain_store):
        result = service.process(_request(context='topic', storeInMemory=True))

        chain_id = result['thoughtChainId']
        assert result == {
            'thoughtNumber': 1,
            'totalThoughts': 3,
            'nextThoughtNeeded': True,
            'thoughtChainId': chain_id,
            'relevantContext': None,
            'contextStored': True
        }
        graph = graph_store.read_graph()
        assert graph.entities == [Entity(name='topic', entity_type='ThoughtContext', observations=['A'])]
        assert graph.relations == [
            Relation(source='topic', target=f'ThoughtChain_{chain_id}', relation_type='has_thinking_process')
        ]
        chain = chain_store.get(chain_id)
        assert chain.context == 'topic'
        assert [t.thought for t in chain.thoughts] == ['A']

    def test_existing_context_entity_is_not_merged(self, service, graph_store):
        service.process(_request(context='topic', storeInMemory=True))
        second = service.process(_request(thought='B', context='topic', storeInMemory=True))

        graph = graph_store.read_graph()
        assert graph.entities[0].observations == ['A']
        assert len(graph.relations) == 2
        assert second['contextStored'] is True

    def test_total_thoughts_is_widened(self, service, chain_store):
        result = service.process(_request(thoughtNumber=5, totalThoughts=2))

        assert result['totalThoughts'] == 5
        assert result['thoughtNumber'] == 5
        assert chain_store.get(result['thoughtChainId']).thoughts[0].total_thoughts == 5

    def test_total_thoughts_never_shrinks(self, service):
        assert service.process(_request(thoughtNumber=2, totalThoughts=8))['totalThoughts'] == 8

    def test_thought_is_always_stored(self, service, chain_store, graph_path):
        result = service.process(_request(context='topic'))

        assert result['contextStored'] is False
        assert chain_store.get(result['thoughtChainId']) is not None
        assert not graph_path.exists()

    def test_store_without_context_does_not_touch_graph(self, service, graph_path):
        result = service.process(_request(storeInMemory=True))

        assert result['contextStored'] is False
        assert not graph_path.exists()

    def test_branch_id_continues_the_same_chain(self, service, chain_store):
        first = service.process(_request(thought='one', branchId='session-1'))
        second = service.process(_request(thought='two', thoughtNumber=2, branchId='session-1'))

        assert first['thoughtChainId'] == second['thoughtChainId'] == 'session-1'
        chain = chain_store.get('session-1')
        assert [t.thought for t in chain.thoughts] == ['one', 'two']
        assert chain.thoughts[0].timestamp < chain.thoughts[1].timestamp

    def test_branch_request_is_routed_to_branch(self, service, chain_store):
        service.process(_request(thought='main', branchId='s'))
        service.process(_request(thought='alt', thoughtNumber=2, branchFromThought=1, branchId='s'))

        chain = chain_store.get('s')
        assert [t.thought for t in chain.thoughts] == ['main']
        assert [t.thought for t in chain.branches['s']] == ['alt']


class TestRetrieve:
    """Tests for knowledge graph retrieval."""

    def test_counts_matching_entities_and_relations(self, service, graph_store):
        graph_store.upsert_entities([
            Entity(name='caching', entity_type='topic'),
            Entity(name='redis', entity_type='tool', observations=['used for caching']),
            Entity(name='postgres', entity_type='tool'),
        ])
        graph_store.upsert_relations([
            Relation(source='redis', target='caching', relation_type='implements'),
            Relation(source='postgres', target='caching', relation_type='unrelated'),
        ])

        result = service.process(_request(context='caching', retrieveFromMemory=True))

        assert result['relevantContext'] == {'entities': 2, 'relations': 1}

    def test_retrieve_happens_before_store(self, service):
        result = service.process(_request(context='fresh', retrieveFromMemory=True, storeInMemory=True))

        assert result['relevantContext'] == {'entities': 0, 'relations': 0}
        assert result['contextStored'] is True

    def test_retrieve_without_context_is_skipped(self, service):
        assert service.process(_request(retrieveFromMemory=True))['relevantContext'] is None

    def test_retrieval_failure_is_best_effort(self, service, graph_path, chain_store):
        graph_path.parent.mkdir(parents=True)
        graph_path.write_text('not json\n')

        result = service.process(_request(context='topic', retrieveFromMemory=True))

        assert result['relevantContext'] is None
        assert chain_store.get(result['thoughtChainId']) is not None


class TestCall:
    """Tests for the response envelope."""

    def test_success_envelope(self, service):
        response = service.call(_request(context='topic', storeInMemory=True))

        assert 'isError' not in response
        payload = _payload(response)
        assert payload['contextStored'] is True
        assert payload['thoughtChainId']

    def test_missing_field_fails_without_mutation(self, service, graph_path, chain_path):
        arguments = _request(context='topic', storeInMemory=True)
        del arguments['nextThoughtNeeded']

        response = service.call(arguments)

        assert response['isError'] is True
        payload = _payload(response)
        assert payload['status'] == 'failed'
        assert 'nextThoughtNeeded' in payload['error']
        assert not graph_path.exists()
        assert not chain_path.exists()

    def test_graph_write_failure_after_chain_write(self, service, graph_path, chain_store):
        graph_path.parent.mkdir(parents=True)
        graph_path.write_text('{"type": "entity"}\n')

        response = service.call(_request(context='topic', storeInMemory=True, branchId='kept'))

        assert response['isError'] is True
        assert 'Corrupt graph record' in _payload(response)['error']
        # The chain write in step 4 is not rolled back
        assert [t.thought for t in chain_store.get('kept').thoughts] == ['A']

    def test_unexpected_exception_becomes_failure(self, service, monkeypatch):

        def explode(*args, **kwargs):
            raise RuntimeError('disk on fire')

        monkeypatch.setattr(service.chains, 'append', explode)

        payload = _payload(service.call(_request()))

        assert payload == {'error': 'disk on fire', 'status': 'failed'}


class TestThoughtLogging:
    """Tests for the formatted thought log."""

    def test_plain_thought(self, make_thought):
        text = format_thought(make_thought('think', number=2, total=5))

        lines = text.splitlines()
        assert len(lines) == 5
        assert '[Thought] 2/5' in lines[1]
        assert 'think' in lines[3]
        assert len({len(line) for line in lines}) == 1

    def test_revision_header(self, make_thought):
        text = format_thought(make_thought(number=3, is_revision=True, revises_thought=1))

        assert '[Revision] 3/3 (revising thought 1)' in text

    def test_branch_header(self, make_thought):
        text = format_thought(make_thought(number=2, branch_from_thought=1, branch_id='alt'))

        assert '[Branch] 2/3 (from thought 1, ID: alt)' in text

    def test_long_thought_is_wrapped_in_full(self, make_thought):
        text = format_thought(make_thought('x' * 200))

        lines = text.splitlines()
        assert len({len(line) for line in lines}) == 1
        assert max(len(line) for line in lines) <= 86
        assert ''.join(line.strip('| ') for line in lines[3:-1]) == 'x' * 200

    def test_multiline_thought_keeps_box_aligned(self, make_thought):
        text = format_thought(make_thought('first line\nsecond\n\nlast one here'))

        lines = text.splitlines()
        assert len({len(line) for line in lines}) == 1
        assert [line[2:-2].rstrip() for line in lines[3:-1]] == ['first line', 'second', '', 'last one here']

    def test_logged_when_enabled(self, service, caplog):
        caplog.set_level(logging.INFO, logger='memory_thinking')

        service.process(_request(thought='visible'))

        assert '[Thought] 1/3' in caplog.text

    def test_silenced_when_disabled(self, graph_store, chain_store, caplog):
        quiet = MemoryThinkingService(graph_store=graph_store,
                                      chain_store=chain_store,
                                      config=ThinkingConfig(disable_thought_logging=True))
        caplog.set_level(logging.INFO, logger='memory_thinking')

        quiet.process(_request(thought='hidden'))

        assert '[Thought]' not in caplog.text


@pytest.mark.parametrize('flag', ['storeInMemory', 'retrieveFromMemory'])
def test_flags_are_independent(service, graph_store, flag):
    graph_store.upsert_entities([Entity(name='topic', entity_type='seed')])

    result = service.process(_request(context='topic', **{flag: True}))

    assert result['contextStored'] is (flag == 'storeInMemory')
    assert (result['relevantContext'] is not None) is (flag == 'retrieveFromMemory')
