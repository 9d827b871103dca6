"""Tests for the interpreter: execution stack, context merging and input scanning."""
import pytest

from archeflow.ast import (
    ASTNode,
    ConditionalNode,
    ContextNode,
    GroupNode,
    InputBoolean,
    InputText,
    OutputNode,
)
from archeflow.config import EngineSettings
from archeflow.errors import (
    ContextOverflowError,
    DuplicateBindingError,
    EmptyStackError,
    TypeMismatchError,
    UnhandledVariantError,
)
from archeflow.graph_engine import DescriptorGraph
from archeflow.interpreter import ExecutionStack, Interpreter, merge_context


def make_interpreter(tree, **settings) -> Interpreter:
    interpreter = Interpreter(DescriptorGraph(tree), EngineSettings(**settings))
    interpreter.enter(tree)
    return interpreter


class TestExecutionStack:

    def test_peek_empty(self):
        with pytest.raises(EmptyStackError):
            ExecutionStack().peek()

    def test_pop_empty(self):
        with pytest.raises(EmptyStackError):
            ExecutionStack().pop()

    def test_push_peek_pop(self):
        a, b = GroupNode(), GroupNode()
        stack = ExecutionStack([a])
        stack.push(b)
        assert stack.peek() is b
        assert stack.pop() is b
        assert stack.peek() is a
        assert len(stack) == 1

    def test_copy_is_independent(self):
        stack = ExecutionStack([GroupNode()])
        clone = stack.copy()
        clone.push(GroupNode())
        assert len(stack) == 1
        assert len(clone) == 2

    def test_interpreter_peek_before_enter(self, pkg_tree):
        interpreter = Interpreter(DescriptorGraph(pkg_tree))
        with pytest.raises(EmptyStackError):
            interpreter.stack.peek()


class TestMergeContext:

    def test_returns_new_map(self):
        env = {}
        merged = merge_context(env, ContextNode.from_mapping({"a": 1}), "", lambda p: None, 10)
        assert env == {}
        assert merged["a"].value == 1
        assert merged["a"].name == "a"

    def test_scope_prefix(self):
        merged = merge_context({}, ContextNode.from_mapping({"docker": True}), "flavor", lambda p: None, 10)
        assert list(merged) == ["flavor.docker"]

    def test_identical_resupply_is_noop(self):
        first = merge_context({}, ContextNode.from_mapping({"a": 1}), "", lambda p: None, 10)
        second = merge_context(first, ContextNode.from_mapping({"a": 1}), "", lambda p: None, 10)
        assert second == first
        assert second["a"] is first["a"]

    def test_conflicting_resupply(self):
        first = merge_context({}, ContextNode.from_mapping({"a": 1}), "", lambda p: None, 10)
        with pytest.raises(DuplicateBindingError, match="already bound"):
            merge_context(first, ContextNode.from_mapping({"a": 2}), "", lambda p: None, 10)

    def test_duplicate_in_one_batch(self):
        batch = ContextNode.from_bindings([("a", 1), ("a", 2)])
        with pytest.raises(DuplicateBindingError, match="twice in one batch"):
            merge_context({}, batch, "", lambda p: None, 10)

    def test_empty_name_rejected(self):
        with pytest.raises(TypeMismatchError, match="empty name"):
            merge_context({}, ContextNode.from_mapping({"": "x"}), "", lambda p: None, 10)

    def test_repeated_identical_in_one_batch(self):
        batch = ContextNode.from_bindings([("a", 1), ("a", 1)])
        assert len(merge_context({}, batch, "", lambda p: None, 10)) == 1

    def test_known_inputs_are_coerced(self):
        docker = InputBoolean(name="docker")
        merged = merge_context({}, ContextNode.from_mapping({"docker": "yes"}), "",
                               {"docker": docker}.get, 10)
        assert merged["docker"].value is True

    def test_coercion_applies_before_conflict_check(self):
        docker = InputBoolean(name="docker")
        lookup = {"docker": docker}.get
        first = merge_context({}, ContextNode.from_mapping({"docker": True}), "", lookup, 10)
        second = merge_context(first, ContextNode.from_mapping({"docker": "y"}), "", lookup, 10)
        assert second == first

    def test_type_mismatch(self):
        lookup = {"pkg": InputText(name="pkg")}.get
        with pytest.raises(TypeMismatchError):
            merge_context({}, ContextNode.from_mapping({"pkg": ["x"]}), "", lookup, 10)

    def test_size_limit(self):
        with pytest.raises(ContextOverflowError, match="exceeds limit 2"):
            merge_context({}, ContextNode.from_mapping({"a": 1, "b": 2, "c": 3}), "", lambda p: None, 2)

    def test_foreign_child_in_batch(self):
        batch = ContextNode().add(GroupNode())
        with pytest.raises(UnhandledVariantError):
            merge_context({}, batch, "", lambda p: None, 10)


class TestVisit:

    def test_visit_at_root(self, pkg_tree):
        interpreter = make_interpreter(pkg_tree)
        interpreter.visit(ContextNode.from_mapping({"pkg": "com.acme"}), interpreter.stack.peek())
        assert interpreter.values() == {"pkg": "com.acme"}

    def test_visit_at_nested_anchor(self, app_tree):
        interpreter = make_interpreter(app_tree)
        docker = interpreter.inputs["flavor.docker"]
        interpreter.visit(ContextNode.from_mapping({"docker": "no"}), docker)
        assert interpreter.values() == {"flavor.docker": False}

    def test_map_is_read_only(self, pkg_tree):
        interpreter = make_interpreter(pkg_tree)
        with pytest.raises(TypeError):
            interpreter.path_to_context_node_map["pkg"] = None

    def test_fork_does_not_share_state(self, pkg_tree):
        interpreter = make_interpreter(pkg_tree)
        clone = interpreter.fork()
        clone.visit(ContextNode.from_mapping({"pkg": "com.acme"}), clone.stack.peek())
        clone.enter(pkg_tree.children[0])
        assert interpreter.values() == {}
        assert len(interpreter.stack) == 1


class TestAdvance:

    def test_stops_on_required_input(self, pkg_tree):
        interpreter = make_interpreter(pkg_tree)
        pending = interpreter.advance()
        assert pending is pkg_tree.children[0]
        assert interpreter.stack.peek() is pending
        assert list(interpreter.stack) == [pkg_tree, pending]

    def test_accept_defaults(self, pkg_tree):
        interpreter = make_interpreter(pkg_tree, accept_defaults=True)
        assert interpreter.advance() is None
        assert interpreter.values() == {"pkg": "com.example"}

    def test_optional_with_default_bound_silently(self):
        tree = GroupNode().add(InputText(name="version", default="1.0", optional=True))
        interpreter = make_interpreter(tree)
        assert interpreter.advance() is None
        assert interpreter.values() == {"version": "1.0"}

    def test_optional_without_default_skipped(self):
        tree = GroupNode().add(
            InputBoolean(name="extras", optional=True).add(InputText(name="vendor")),
        )
        interpreter = make_interpreter(tree)
        assert interpreter.advance() is None
        assert interpreter.values() == {}

    def test_follows_selected_branch(self, app_tree):
        interpreter = make_interpreter(app_tree)
        interpreter.visit(ContextNode.from_mapping({"name": "demo", "flavor": "mp"}), app_tree)
        pending = interpreter.advance()
        assert pending is interpreter.inputs["flavor.features"]

    def test_unselected_branch_ignored(self, app_tree):
        interpreter = make_interpreter(app_tree)
        interpreter.visit(ContextNode.from_mapping({"name": "demo", "flavor": "se", "flavor.docker": True}),
                          app_tree)
        assert interpreter.advance() is None

    def test_unwinds_before_scanning(self, app_tree):
        interpreter = make_interpreter(app_tree)
        first = interpreter.advance()
        interpreter.bind(first, "demo")
        second = interpreter.advance()
        assert second is interpreter.inputs["flavor"]
        assert first not in list(interpreter.stack)

    def test_context_preset_merged_at_its_scope(self):
        tree = GroupNode().add(
            InputBoolean(name="db").add(ContextNode.from_mapping({"driver": "h2"})),
        )
        interpreter = make_interpreter(tree)
        interpreter.bind(tree.children[0], True)
        assert interpreter.advance() is None
        assert interpreter.values() == {"db": True, "db.driver": "h2"}

    def test_conditional_gates_inputs(self):
        tree = GroupNode().add(
            InputBoolean(name="docker", default=False),
            ConditionalNode(path="docker").add(InputText(name="registry")),
        )
        interpreter = make_interpreter(tree)
        interpreter.bind(tree.children[0], False)
        assert interpreter.advance() is None

        interpreter = make_interpreter(tree)
        interpreter.bind(tree.children[0], True)
        assert interpreter.advance() is tree.children[1].children[0]

    def test_unknown_variant(self):
        class Foreign(ASTNode):
            pass

        tree = GroupNode().add(Foreign())
        interpreter = make_interpreter(tree)
        with pytest.raises(UnhandledVariantError, match="Foreign"):
            interpreter.advance()
