"""Tests for the tree-sitter Java source parser."""

import pytest

from docloom.core.corpus import JavaSourceParser


# =========================================================================
# Sample Java source fixtures
# =========================================================================

USER_SERVICE = """\
package com.example.service;

import com.example.dto.UserDTO;
import org.springframework.stereotype.Service;
import java.util.*;
import static java.util.Collections.emptyList;

@Service
public class UserService {
    private final UserMapper userMapper;
    private static final String NAME = "users";

    public UserService(UserMapper userMapper) {
        this.userMapper = userMapper;
    }

    public List<UserDTO> findAll(int page, String... names) {
        return userMapper.selectList(null);
    }

    enum Status { ACTIVE, INACTIVE; public String label() { return name(); } }
}
"""

ORDER_MAPPER = """\
package com.example.mapper;

import com.baomidou.mybatisplus.core.mapper.BaseMapper;
import org.apache.ibatis.annotations.*;

@Mapper
public interface OrderMapper extends BaseMapper<Order> {
    @Select({"SELECT * FROM orders", "WHERE id = #{id}"})
    Order findById(@Param("id") Long id);

    @Update(value = "UPDATE orders SET status = #{status}")
    int updateStatus(Order order);

    List<Order>[] pages(Map<String, ? extends Order> filter);
}
"""

POINT_RECORD = """\
package com.example.model;

public record Point(int x, int y) implements Comparable<Point>, java.io.Serializable {
    public int compareTo(Point other) { return 0; }
}
"""


@pytest.fixture
def parser():
    return JavaSourceParser()


# =========================================================================
# Tests: File structure
# =========================================================================

class TestFileStructure:
    def test_package_and_imports(self, parser):
        result = parser.parse_source(USER_SERVICE, "/src/UserService.java")
        assert result.package == "com.example.service"
        # Static imports are not type imports
        assert result.imports == [
            "com.example.dto.UserDTO",
            "org.springframework.stereotype.Service",
            "java.util.*",
        ]
        assert result.has_errors is False

    def test_nested_types_are_flattened(self, parser):
        result = parser.parse_source(USER_SERVICE, "/src/UserService.java")
        names = [c.qualified_name for c in result.classes]
        assert names == [
            "com.example.service.UserService",
            "com.example.service.UserService.Status",
        ]
        status = result.classes[1]
        assert status.kind == "enum"
        assert status.outer_name == "com.example.service.UserService"
        assert [m.name for m in status.methods] == ["label"]

    def test_class_lines_include_annotations(self, parser):
        cls = parser.parse_source(USER_SERVICE, "/src/UserService.java").classes[0]
        assert cls.start_line == 8
        assert cls.end_line == 22
        assert [a.name for a in cls.annotations] == ["Service"]
        assert cls.has_modifier("public")

    def test_empty_source(self, parser):
        result = parser.parse_source("", "/src/Empty.java")
        assert result.classes == []
        assert result.package == ""


# =========================================================================
# Tests: Members
# =========================================================================

class TestMembers:
    def test_fields(self, parser):
        cls = parser.parse_source(USER_SERVICE, "/src/UserService.java").classes[0]
        assert [f.name for f in cls.fields] == ["userMapper", "NAME"]
        assert cls.fields[0].type.name == "UserMapper"
        assert "static" in cls.fields[1].modifiers

    def test_constructor(self, parser):
        cls = parser.parse_source(USER_SERVICE, "/src/UserService.java").classes[0]
        ctor = cls.methods[0]
        assert ctor.is_constructor
        assert ctor.return_type is None
        assert ctor.signature == "UserService(UserMapper)"

    def test_method_signature_and_lines(self, parser):
        cls = parser.parse_source(USER_SERVICE, "/src/UserService.java").classes[0]
        method = cls.methods[1]
        assert method.name == "findAll"
        assert method.class_fqn == "com.example.service.UserService"
        assert method.signature == "findAll(int,String...)"
        assert method.start_line == 17
        assert method.end_line == 19
        assert method.parameters[0].type.is_primitive
        assert method.parameters[1].type.is_array

    def test_generic_return_type(self, parser):
        cls = parser.parse_source(USER_SERVICE, "/src/UserService.java").classes[0]
        returns = cls.methods[1].return_type
        assert returns.text == "List<UserDTO>"
        assert returns.name == "List"
        assert [a.name for a in returns.arguments] == ["UserDTO"]

    def test_invocations(self, parser):
        cls = parser.parse_source(USER_SERVICE, "/src/UserService.java").classes[0]
        assert cls.methods[1].invocations == [("userMapper", "selectList")]

    def test_public_methods_exclude_constructors(self, parser):
        cls = parser.parse_source(USER_SERVICE, "/src/UserService.java").classes[0]
        assert [m.name for m in cls.public_methods()] == ["findAll"]


# =========================================================================
# Tests: Interfaces, annotations and supertypes
# =========================================================================

class TestInterfaces:
    def test_interface_extends_generic_base(self, parser):
        cls = parser.parse_source(ORDER_MAPPER, "/src/OrderMapper.java").classes[0]
        assert cls.is_interface
        assert cls.extends[0].name == "BaseMapper"
        assert cls.extends[0].arguments[0].name == "Order"
        assert cls.implements == []

    def test_interface_methods_are_public(self, parser):
        cls = parser.parse_source(ORDER_MAPPER, "/src/OrderMapper.java").classes[0]
        assert [m.name for m in cls.public_methods()] == ["findById", "updateStatus", "pages"]

    def test_array_annotation_value(self, parser):
        cls = parser.parse_source(ORDER_MAPPER, "/src/OrderMapper.java").classes[0]
        select = cls.methods[0].annotations[0]
        assert select.name == "Select"
        assert select.values["value"] == ['"SELECT * FROM orders"', '"WHERE id = #{id}"']

    def test_named_annotation_value(self, parser):
        cls = parser.parse_source(ORDER_MAPPER, "/src/OrderMapper.java").classes[0]
        update = cls.methods[1].annotations[0]
        assert update.arguments["value"] == '"UPDATE orders SET status = #{status}"'

    def test_parameter_annotations(self, parser):
        cls = parser.parse_source(ORDER_MAPPER, "/src/OrderMapper.java").classes[0]
        param = cls.methods[0].parameters[0]
        assert param.name == "id"
        assert [a.name for a in param.annotations] == ["Param"]

    def test_array_and_wildcard_types(self, parser):
        cls = parser.parse_source(ORDER_MAPPER, "/src/OrderMapper.java").classes[0]
        pages = cls.methods[2]
        assert pages.return_type.is_array
        assert pages.return_type.name == "List"
        wildcard = pages.parameters[0].type.arguments[1]
        assert wildcard.name == "Order"

    def test_record_implements(self, parser):
        cls = parser.parse_source(POINT_RECORD, "/src/Point.java").classes[0]
        assert cls.kind == "record"
        assert [t.name for t in cls.implements] == ["Comparable", "java.io.Serializable"]
        assert cls.methods[0].name == "compareTo"
