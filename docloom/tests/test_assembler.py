"""Tests for ContextAssembler — sections, gutter, anchors, related types, budget."""

from unittest.mock import MagicMock, patch

import pytest

from docloom.core.config import ContextConfig
from docloom.core.context import (
    CallGraphSlice,
    ContextAssembler,
    FileOutputWriter,
    SliceAnchor,
    gutter,
    truncate,
)
from docloom.core.corpus import JavaCorpus
from docloom.core.scan import EntryPoint


# ── Fixtures ──────────────────────────────────────────────────────────────


def _write(root, rel_path: str, text: str) -> str:
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return str(path)


JAVA = "src/main/java/com/example"

USER = """\
package com.example.entity;

public class User {
    private Long id;
    private String name;
}
"""

ORDER = """\
package com.example.model;

public class Order {
    private Long id;
}
"""

USER_DTO = """\
package com.example.dto;

public class UserDTO {
    private String name;
}
"""

USER_SERVICE = """\
package com.example.service;

import com.example.dto.UserDTO;
import com.example.entity.User;
import org.springframework.stereotype.Service;

@Service
public class UserService {
    public UserDTO getUser(Long id) {
        User user = load(id);
        return convert(user);
    }

    private User load(Long id) {
        return new User();
    }

    private UserDTO convert(User user) {
        return new UserDTO();
    }
}
"""

USER_MAPPER = """\
package com.example.mapper;

import com.baomidou.mybatisplus.core.mapper.BaseMapper;
import com.example.entity.User;

public interface UserMapper extends BaseMapper<User> {
    int save(User user);
}
"""

USER_MAPPER_XML = """\
<mapper namespace="com.example.mapper.UserMapper">
    <resultMap id="orderMap" type="com.example.model.Order"/>
    <select id="save" resultType="User">INSERT INTO users VALUES (#{user.name})</select>
</mapper>
"""


@pytest.fixture
def project(tmp_path):
    paths = {
        "user": _write(tmp_path, f"{JAVA}/entity/User.java", USER),
        "order": _write(tmp_path, f"{JAVA}/model/Order.java", ORDER),
        "dto": _write(tmp_path, f"{JAVA}/dto/UserDTO.java", USER_DTO),
        "service": _write(tmp_path, f"{JAVA}/service/UserService.java", USER_SERVICE),
        "mapper": _write(tmp_path, f"{JAVA}/mapper/UserMapper.java", USER_MAPPER),
        "xml": _write(tmp_path, "src/main/resources/mapper/UserMapper.xml", USER_MAPPER_XML),
    }
    return tmp_path, paths


def _assembler(root, max_chars: int = 80_000, **config):
    corpus = JavaCorpus(str(root))
    writer = FileOutputWriter(str(root / "out"))
    return ContextAssembler(corpus, writer, ContextConfig(max_chars=max_chars, **config)), corpus


def _service_entry(paths, line: int = 9) -> EntryPoint:
    return EntryPoint(
        class_fqn="com.example.service.UserService",
        method="getUser(Long)",
        file=paths["service"],
        line=line,
        annotation="Service",
    )


def _service_slice(paths) -> CallGraphSlice:
    service = paths["service"]
    return CallGraphSlice(
        summary="getUser -> load, convert",
        anchors=[
            SliceAnchor(service, 9, 12),
            SliceAnchor(service, 9, 12),
            SliceAnchor(service, 14, 16),
        ],
    )


# ── Tests: Helpers ────────────────────────────────────────────────────────


class TestHelpers:
    def test_gutter_width(self):
        assert gutter(9, "x") == "     9 | x"
        assert gutter(123456, "") == "123456 | "

    def test_truncate(self):
        assert truncate("abc", 5) == "abc"
        assert truncate("abcdefgh", 5) == "abcde\n... [truncated]\n"


# ── Tests: Method bundle ──────────────────────────────────────────────────


class TestMethodBundle:
    def test_sections_in_order(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        text = assembler.build(_service_entry(paths), _service_slice(paths), "a/b.md").text

        headers = [
            "# Entry Method",
            "# Method Source",
            "# Callgraph Summary",
            "# Slices",
            "# Related Types (DTO/VO/Entity/Enum)",
            "# Called Methods",
        ]
        positions = [text.index(h + "\n") for h in headers]
        assert positions == sorted(positions)
        assert text.startswith("# Entry Method\ncom.example.service.UserService#getUser(Long)\n")
        assert "# SQL Statement" not in text

    def test_method_source_with_gutter(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        text = assembler.build(_service_entry(paths), CallGraphSlice(), "a.md").text
        assert "# Method Source\n     9 |     public UserDTO getUser(Long id) {\n" in text
        assert "    12 |     }\n" in text

    def test_method_found_by_name_when_line_misses(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        text = assembler.build(_service_entry(paths, line=1), CallGraphSlice(), "a.md").text
        assert "     9 |     public UserDTO getUser(Long id) {" in text

    def test_form_feed_keeps_line_numbers(self, tmp_path):
        path = _write(
            tmp_path,
            "src/main/java/p/A.java",
            "package p;\n/* header \f page */\n@Service\npublic class A {\n    public void run() { work(); }\n}\n",
        )
        assembler, _ = _assembler(tmp_path)
        entry = EntryPoint("p.A", "run()", path, 5, "Service")
        text = assembler.build(entry, CallGraphSlice(anchors=[SliceAnchor(path, 4, 4)]), "a.md").text
        assert "# Method Source\n     5 |     public void run() { work(); }\n" in text
        assert f"## File: {path} [4-4]\n     4 | public class A {{\n" in text

    def test_duplicate_anchors_emitted_once(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        text = assembler.build(_service_entry(paths), _service_slice(paths), "a.md").text
        service = paths["service"]
        assert text.count(f"## File: {service} [9-12]") == 1
        assert text.count(f"## File: {service} [14-16]") == 1

    def test_anchors_clamped_to_file(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        service = paths["service"]
        call_slice = CallGraphSlice(anchors=[SliceAnchor(service, 0, 999), SliceAnchor(service, -5, 500)])
        text = assembler.build(_service_entry(paths), call_slice, "a.md").text
        # Both anchors clamp to the same range
        assert text.count(f"## File: {service} [1-21]") == 1

    def test_related_types_and_called_methods(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        text = assembler.build(_service_entry(paths), CallGraphSlice(), "a.md").text
        assert "## com.example.dto.UserDTO\n// File: " in text
        assert "## com.example.service.UserService#load" in text
        assert "## com.example.service.UserService#convert" in text

    def test_called_methods_disabled(self, project):
        root, paths = project
        assembler, _ = _assembler(root, collect_called=False)
        text = assembler.build(_service_entry(paths), CallGraphSlice(), "a.md").text
        assert "# Called Methods" not in text

    def test_sql_section(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        entry = EntryPoint(
            class_fqn="com.example.mapper.UserMapper",
            method="save",
            file=paths["xml"],
            line=3,
            annotation="MyBatisXml",
            sql_statement="INSERT INTO users VALUES (#{user.name})",
            xml_file_path=paths["xml"],
        )
        text = assembler.build(entry, CallGraphSlice(), "a.md").text
        assert (
            "# SQL Statement\n```sql\nINSERT INTO users VALUES (#{user.name})\n```\n"
            f"// Origin: {paths['xml']}\n"
        ) in text
        # XML entries fall back to the namespace interface method
        assert "     7 |     int save(User user);" in text

    def test_bundle_written(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        bundle = assembler.build(_service_entry(paths), CallGraphSlice(), "com.example.service.UserService/getUser.md")
        assert bundle.path == str(root / "out" / "com.example.service.UserService" / "getUser.md")
        with open(bundle.path, encoding="utf-8") as f:
            assert f.read() == bundle.text

    def test_writer_receives_relative_path(self, project):
        root, paths = project
        writer = MagicMock()
        writer.write_relative.return_value = "/abs/out.md"
        assembler = ContextAssembler(JavaCorpus(str(root)), writer)
        bundle = assembler.build(_service_entry(paths), CallGraphSlice(), "rel/out.md")
        writer.write_relative.assert_called_once_with("rel/out.md", bundle.text)
        assert bundle.path == "/abs/out.md"

    def test_single_read_action(self, project):
        root, paths = project
        assembler, corpus = _assembler(root)
        with patch.object(corpus, "read_action", wraps=corpus.read_action) as read_action:
            assembler.build(_service_entry(paths), _service_slice(paths), "a.md")
        assert read_action.call_count == 1


# ── Tests: MyBatis related types ──────────────────────────────────────────


class TestMyBatisRelatedTypes:
    def test_base_mapper_entity(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        entry = EntryPoint(
            class_fqn="com.example.mapper.UserMapper",
            method="insert(User)",
            file=paths["mapper"],
            line=6,
            annotation="MyBatis-Plus BaseMapper",
        )
        text = assembler.build(entry, CallGraphSlice(), "a.md").text
        assert "## com.example.entity.User\n" in text
        # Inherited methods have no declaration to show
        assert "# Method Source" not in text

    def test_xml_entity_types(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        entry = EntryPoint(
            class_fqn="com.example.mapper.UserMapper",
            method="save",
            file=paths["xml"],
            line=3,
            annotation="MyBatisXml",
            sql_statement="INSERT INTO users VALUES (#{user.name})",
            xml_file_path=paths["xml"],
        )
        text = assembler.build(entry, CallGraphSlice(), "a.md").text
        assert "## com.example.model.Order\n" in text
        assert "## com.example.entity.User\n" in text
        assert text.count("## com.example.entity.User\n") == 1

    def test_sql_placeholder_parameter(self, project):
        root, paths = project
        assembler, _ = _assembler(root, type_depth=0)
        entry = EntryPoint(
            class_fqn="com.example.mapper.UserMapper",
            method="save(User)",
            file=paths["mapper"],
            line=7,
            annotation="Mapper",
            sql_statement="INSERT INTO users VALUES (#{user.name})",
        )
        text = assembler.build(entry, CallGraphSlice(), "a.md").text
        assert "## com.example.entity.User\n" in text


TICKET_MAPPER = """\
package com.example.mapper;

import com.example.entity.Ticket;
import com.example.model.CacheConfig;
import com.example.query.TicketQuery;
import java.util.List;

public interface TicketMapper {
    List<Ticket> search(TicketQuery query);

    CacheConfig cacheConfig();
}
"""

TICKET_MAPPER_XML = """\
<mapper namespace="com.example.mapper.TicketMapper">
    <select id="search">SELECT * FROM ticket WHERE title = #{query.title}</select>
</mapper>
"""


@pytest.fixture
def ticket_project(tmp_path):
    paths = {
        "ticket": _write(tmp_path, f"{JAVA}/entity/Ticket.java",
                         "package com.example.entity;\n\npublic class Ticket {\n    private String title;\n}\n"),
        "query": _write(tmp_path, f"{JAVA}/query/TicketQuery.java",
                        "package com.example.query;\n\npublic class TicketQuery {\n    private String title;\n}\n"),
        "config": _write(tmp_path, f"{JAVA}/model/CacheConfig.java",
                         "package com.example.model;\n\npublic enum CacheConfig { ON, OFF }\n"),
        "mapper": _write(tmp_path, f"{JAVA}/mapper/TicketMapper.java", TICKET_MAPPER),
        "xml": _write(tmp_path, "src/main/resources/mapper/TicketMapper.xml", TICKET_MAPPER_XML),
    }
    return tmp_path, paths


class TestEntityGate:
    """Heuristic related-type paths only admit classes the entity classifier accepts."""

    SQL = "SELECT * FROM ticket WHERE title = #{query.title}"

    def test_sql_parameter_and_return_type_argument(self, ticket_project):
        root, paths = ticket_project
        assembler, _ = _assembler(root, type_depth=0)
        entry = EntryPoint(
            class_fqn="com.example.mapper.TicketMapper",
            method="search(TicketQuery)",
            file=paths["mapper"],
            line=9,
            annotation="Mapper",
            sql_statement=self.SQL,
        )
        text = assembler.build(entry, CallGraphSlice(), "a.md").text

        # Referenced by the SQL, but not entity-like
        assert "## com.example.query.TicketQuery" not in text
        # Generic argument of the return type
        assert "## com.example.entity.Ticket\n" in text

    def test_mapper_interface_method_types(self, ticket_project):
        root, paths = ticket_project
        assembler, _ = _assembler(root, type_depth=0)
        entry = EntryPoint(
            class_fqn="com.example.mapper.TicketMapper",
            method="search",
            file=paths["xml"],
            line=2,
            annotation="MyBatisXml",
            sql_statement=self.SQL,
            xml_file_path=paths["xml"],
        )
        text = assembler.build(entry, CallGraphSlice(), "a.md").text

        assert "## com.example.entity.Ticket\n" in text
        assert "## com.example.model.CacheConfig" not in text
        assert "## com.example.query.TicketQuery" not in text


# ── Tests: Budget ─────────────────────────────────────────────────────────


class TestBudget:
    @pytest.mark.parametrize("max_chars", [40, 120, 400, 900, 2000])
    def test_length_bounded(self, project, max_chars):
        root, paths = project
        assembler, _ = _assembler(root, max_chars=max_chars)
        text = assembler.build(_service_entry(paths), _service_slice(paths), "a.md").text
        assert len(text) <= max_chars + len("\n... [truncated]\n")

    def test_truncation_only_at_tail(self, project):
        root, paths = project
        full, _ = _assembler(root)
        small, _ = _assembler(root, max_chars=300)
        full_text = full.build(_service_entry(paths), _service_slice(paths), "full.md").text
        small_text = small.build(_service_entry(paths), _service_slice(paths), "small.md").text

        assert len(full_text) > 300
        assert small_text == full_text[:300] + "\n... [truncated]\n"

    def test_under_budget_not_truncated(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        text = assembler.build(_service_entry(paths), CallGraphSlice(), "a.md").text
        assert "[truncated]" not in text


# ── Tests: Class bundle ───────────────────────────────────────────────────


class TestClassBundle:
    def test_class_bundle_sections(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        text = assembler.build_for_class(_service_entry(paths), CallGraphSlice(), "c.md").text

        assert text.startswith("# Entry Class\ncom.example.service.UserService\n\n# Class Source\n")
        assert "     8 | public class UserService {" in text
        assert "# Public Methods\n- getUser(Long)\n" in text
        assert "- load(Long)" not in text
        assert "## com.example.dto.UserDTO\n" in text

    def test_class_bundle_budget(self, project):
        root, paths = project
        assembler, _ = _assembler(root, max_chars=100)
        text = assembler.build_for_class(_service_entry(paths), CallGraphSlice(), "c.md").text
        assert text.endswith("... [truncated]\n")
        assert len(text) <= 100 + len("\n... [truncated]\n")

    def test_unknown_class(self, project):
        root, paths = project
        assembler, _ = _assembler(root)
        entry = EntryPoint("com.example.Missing", "m()", "/x.java", 1, "Service")
        text = assembler.build_for_class(entry, CallGraphSlice(), "c.md").text
        assert text == "# Entry Class\ncom.example.Missing\n\n"
