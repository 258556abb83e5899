"""
End-to-end properties of a check run.

These tests go through scan, associate and validate together and verify
the guarantees a CI gate relies on:

1. Association is local: only the adjacent comment block counts
2. Adding an optional field to a rule never changes the violations
3. Every missing required tag is reported exactly once
4. Reports do not depend on file order or worker count
"""

from doccheck.engine import check_source, run
from doccheck.models import ViolationKind
from doccheck.report import aggregate, render_text

LOCALITY_DOCUMENTED = """
/** @fileoverview Orders. */

/**
 * @description Lists orders.
 * @returns Orders
 */
export function listOrders() {}
"""

LOCALITY_DETACHED = """
/** @fileoverview Orders. */

/**
 * @description Lists orders.
 * @returns Orders
 */

export function listOrders() {}
"""

RULES = {
    "File": {"required": {"@fileoverview": "non-empty"}},
    "Function": {"required": {"@description": "non-empty", "@returns": "non-empty"}},
}


class TestAssociationLocality:
    def test_blank_line_detaches_block(self, make_source, make_config):
        """
        Inserting one blank line between a block and its declaration turns a
        compliant function into a MissingBlock.
        """
        registry = make_config(RULES).registry
        assert check_source(make_source(LOCALITY_DOCUMENTED), registry) == []

        violations = check_source(make_source(LOCALITY_DETACHED), registry)
        assert [(v.name, v.kind) for v in violations] == [("listOrders", ViolationKind.MISSING_BLOCK)]

    def test_distant_block_does_not_count(self, make_source, make_config):
        source = make_source(
            """
            /** @fileoverview Orders. */

            /**
             * @description Lists orders.
             * @returns Orders
             */
            export function listOrders() {}
            export function countOrders() {}
            """
        )
        violations = check_source(source, make_config(RULES).registry)
        assert [(v.name, v.kind) for v in violations] == [("countOrders", ViolationKind.MISSING_BLOCK)]


class TestSchemaIsolation:
    def test_optional_fields_do_not_change_violations(self, make_source, make_config):
        source = make_source(
            """
            /** @description Lists orders. */
            export function listOrders(limit: number) {}

            export function countOrders() {}
            """
        )
        base = {"Function": {"required": {"@description": "non-empty"}, "param_tag": "@param"}}
        extended = {
            "Function": {
                "required": {"@description": "non-empty"},
                "optional": {"@example": "non-empty", "@throws": r"matches-pattern:\d{3}"},
                "param_tag": "@param",
            }
        }
        before = check_source(source, make_config(base).registry)
        after = check_source(source, make_config(extended).registry)
        assert before == after
        assert len(before) == 2


class TestCompleteness:
    def test_each_missing_tag_once(self, make_source, make_config):
        source = make_source(
            """
            // SECURITY: none
            router.get("/health", handler);
            """
        )
        rules = {
            "ApiRoute": {
                "required": {
                    "@description": "non-empty",
                    "@route": "non-empty",
                    "SECURITY": "non-empty",
                    "@returns": "present",
                }
            }
        }
        violations = check_source(source, make_config(rules).registry)
        assert sorted(v.tag for v in violations) == ["@description", "@returns", "@route"]
        assert {v.kind for v in violations} == {ViolationKind.MISSING_REQUIRED_TAG}


class TestDeterminism:
    def test_file_order_irrelevant(self, make_source, make_config):
        registry = make_config(RULES).registry
        sources = [make_source(LOCALITY_DETACHED, path=f"src/f{i}.ts") for i in range(4)]
        forward = [v for s in sources for v in check_source(s, registry)]
        backward = [v for s in reversed(sources) for v in check_source(s, registry)]
        assert render_text(aggregate(forward)) == render_text(aggregate(backward))

    def test_run_is_idempotent(self, write_tree, make_config):
        root = write_tree({f"src/f{i}.ts": LOCALITY_DETACHED for i in range(6)})
        config = make_config(RULES)
        first = run([root], config, workers=3)
        second = run([root], config, workers=5)
        assert first == second
        assert first.total == 6

    def test_embedded_rules_sample_project(self, write_tree, default_config):
        """A small mixed-language project checked with the embedded rules."""
        root = write_tree(
            {
                "api/users.ts": """
                    /**
                     * @fileoverview User routes.
                     */

                    /**
                     * @description Create a user.
                     * @route POST /users
                     * SECURITY: Requires an admin session.
                     * @throws 409 when the email is taken
                     */
                    router.post("/users", createUser);
                """,
                "app/settings.py": """
                    # @fileoverview Settings helpers.

                    # @description Read a setting.
                    # @param name Setting name
                    # TODO: cache lookups
                    def get_setting(name):
                        return name
                """,
                ".env": """
                    # @fileoverview Runtime settings.

                    # @description Port to listen on.
                    # @required yes
                    PORT=8080
                """,
            }
        )
        report = run([root], default_config)
        assert [(v.name, v.kind.value) for v in report.violations] == [
            ("PORT", "InvalidTagValue"),
            ("get_setting", "StaleOwnership"),
        ]
        assert report.files_checked == 3
