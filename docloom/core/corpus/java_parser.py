"""Java source parser using tree-sitter.

Walks the tree-sitter AST to extract classes, interfaces, enums, records,
their methods, fields, annotations and supertypes, plus the package and
import declarations needed for type-name resolution.
"""

import logging
import re
from typing import List, Optional, Tuple

import tree_sitter
import tree_sitter_java

from .models import Annotation, JavaClass, JavaField, JavaFile, JavaMethod, Parameter, TypeRef

logger = logging.getLogger(__name__)

_JAVA_LANGUAGE = tree_sitter.Language(tree_sitter_java.language())

_TYPE_DECLARATIONS = {
    "class_declaration": "class",
    "interface_declaration": "interface",
    "enum_declaration": "enum",
    "record_declaration": "record",
    "annotation_type_declaration": "annotation",
}

_PRIMITIVE_TYPES = frozenset({
    "integral_type",
    "floating_point_type",
    "boolean_type",
    "void_type",
})

_STRING_NODES = frozenset({"string_literal", "text_block"})

_WHITESPACE = re.compile(r"\s+")


class JavaSourceParser:
    """tree-sitter based Java parser.

    Produces one JavaFile per source file. Nested types are flattened
    into JavaFile.classes with dotted qualified names (Outer.Inner).
    """

    def parse_source(self, source_text: str, file_path: str) -> JavaFile:
        """Parse Java source text into a JavaFile."""
        source = source_text.encode("utf-8")
        line_count = source_text.count("\n") + (1 if source_text and not source_text.endswith("\n") else 0)

        parser = tree_sitter.Parser(_JAVA_LANGUAGE)
        tree = parser.parse(source)
        root = tree.root_node

        if root.has_error:
            logger.debug(f"tree-sitter reported parse errors in {file_path}")

        package = self._extract_package(root, source)
        imports = self._extract_imports(root, source)

        classes: List[JavaClass] = []
        for child in root.children:
            if child.type in _TYPE_DECLARATIONS:
                self._extract_type(child, source, file_path, package, None, classes)

        return JavaFile(
            file_path=file_path,
            package=package,
            imports=imports,
            classes=classes,
            line_count=line_count,
            has_errors=root.has_error,
        )

    # =========================================================================
    # Declarations
    # =========================================================================

    def _extract_type(
        self,
        node: tree_sitter.Node,
        source: bytes,
        file_path: str,
        package: str,
        outer: Optional[JavaClass],
        out: List[JavaClass],
    ) -> None:
        """Extract a type declaration, its members and nested types into `out`."""
        name = self._get_child_text(node, "name", source)
        if not name:
            return

        if outer is not None:
            qualified_name = f"{outer.qualified_name}.{name}"
        else:
            qualified_name = f"{package}.{name}" if package else name

        modifiers, annotations = self._extract_modifiers(node, source)
        extends, implements = self._extract_inheritance(node, source)

        cls = JavaClass(
            name=name,
            qualified_name=qualified_name,
            package=package,
            kind=_TYPE_DECLARATIONS[node.type],
            file_path=file_path,
            start_line=node.start_point.row + 1,
            end_line=node.end_point.row + 1,
            annotations=annotations,
            modifiers=modifiers,
            extends=extends,
            implements=implements,
            outer_name=outer.qualified_name if outer is not None else None,
        )
        out.append(cls)

        body = node.child_by_field_name("body")
        if body is None:
            return

        members = list(body.children)
        # Enum bodies keep their members after the constant list
        for child in body.children:
            if child.type == "enum_body_declarations":
                members.extend(child.children)

        for child in members:
            if child.type == "method_declaration":
                method = self._extract_method(child, source, file_path, qualified_name)
                if method:
                    cls.methods.append(method)

            elif child.type == "constructor_declaration":
                ctor = self._extract_method(child, source, file_path, qualified_name, is_constructor=True)
                if ctor:
                    cls.methods.append(ctor)

            elif child.type in ("field_declaration", "constant_declaration"):
                cls.fields.extend(self._extract_fields(child, source))

            elif child.type in _TYPE_DECLARATIONS:
                self._extract_type(child, source, file_path, package, cls, out)

    def _extract_method(
        self,
        node: tree_sitter.Node,
        source: bytes,
        file_path: str,
        class_fqn: str,
        is_constructor: bool = False,
    ) -> Optional[JavaMethod]:
        name = self._get_child_text(node, "name", source)
        if not name:
            return None

        modifiers, annotations = self._extract_modifiers(node, source)

        return_type = None
        if not is_constructor:
            type_node = node.child_by_field_name("type")
            if type_node is not None:
                return_type = self._type_ref(type_node, source)

        parameters: List[Parameter] = []
        params_node = node.child_by_field_name("parameters")
        if params_node is not None:
            for child in params_node.named_children:
                param = self._extract_parameter(child, source)
                if param:
                    parameters.append(param)

        invocations: List[Tuple[Optional[str], str]] = []
        body = node.child_by_field_name("body")
        if body is not None:
            invocations = self._extract_invocations(body, source)

        return JavaMethod(
            name=name,
            class_fqn=class_fqn,
            file_path=file_path,
            start_line=node.start_point.row + 1,
            end_line=node.end_point.row + 1,
            parameters=parameters,
            return_type=return_type,
            annotations=annotations,
            modifiers=modifiers,
            invocations=invocations,
            is_constructor=is_constructor,
        )

    def _extract_parameter(self, node: tree_sitter.Node, source: bytes) -> Optional[Parameter]:
        if node.type == "formal_parameter":
            type_node = node.child_by_field_name("type")
            name = self._get_child_text(node, "name", source)
            if type_node is None or not name:
                return None
            _, annotations = self._extract_modifiers(node, source)
            return Parameter(name=name, type=self._type_ref(type_node, source), annotations=annotations)

        if node.type == "spread_parameter":
            # Varargs: modifiers? type "..." variable_declarator
            type_ref = None
            name = ""
            for child in node.named_children:
                if child.type == "variable_declarator":
                    name = self._get_child_text(child, "name", source) or ""
                elif child.type != "modifiers" and type_ref is None:
                    type_ref = self._type_ref(child, source)
            if type_ref is None or not name:
                return None
            _, annotations = self._extract_modifiers(node, source)
            type_ref.text += "..."
            type_ref.is_array = True
            return Parameter(name=name, type=type_ref, annotations=annotations)

        return None

    def _extract_fields(self, node: tree_sitter.Node, source: bytes) -> List[JavaField]:
        type_node = node.child_by_field_name("type")
        if type_node is None:
            return []
        modifiers, annotations = self._extract_modifiers(node, source)
        type_ref = self._type_ref(type_node, source)

        fields = []
        for declarator in node.children_by_field_name("declarator"):
            name = self._get_child_text(declarator, "name", source)
            if name:
                fields.append(JavaField(name=name, type=type_ref, annotations=annotations, modifiers=modifiers))
        return fields

    @staticmethod
    def _extract_invocations(body: tree_sitter.Node, source: bytes) -> List[Tuple[Optional[str], str]]:
        """Collect (receiver, name) for every method invocation in a body, in source order."""
        found: List[Tuple[Optional[str], str]] = []
        stack = [body]
        while stack:
            node = stack.pop()
            if node.type == "method_invocation":
                name_node = node.child_by_field_name("name")
                obj_node = node.child_by_field_name("object")
                if name_node is not None:
                    receiver = _text(obj_node, source) if obj_node is not None else None
                    found.append((receiver, _text(name_node, source)))
            stack.extend(reversed(node.children))
        return found

    # =========================================================================
    # Types, modifiers and annotations
    # =========================================================================

    def _type_ref(self, node: tree_sitter.Node, source: bytes) -> TypeRef:
        text = _WHITESPACE.sub("", _text(node, source))

        if node.type in _PRIMITIVE_TYPES:
            return TypeRef(text=text, name=text, is_primitive=True)

        if node.type == "array_type":
            element = node.child_by_field_name("element")
            inner = self._type_ref(element, source) if element is not None else TypeRef(text=text, name=text)
            return TypeRef(
                text=text,
                name=inner.name,
                arguments=inner.arguments,
                is_array=True,
                is_primitive=inner.is_primitive,
            )

        if node.type == "generic_type":
            name = text.split("<", 1)[0]
            arguments: List[TypeRef] = []
            for child in node.named_children:
                if child.type == "type_arguments":
                    arguments = [self._type_ref(arg, source) for arg in child.named_children]
                elif child.type in ("type_identifier", "scoped_type_identifier"):
                    name = _WHITESPACE.sub("", _text(child, source))
            return TypeRef(text=text, name=name, arguments=arguments)

        if node.type == "wildcard":
            # "? extends User" resolves to its bound
            for child in node.named_children:
                if child.type not in ("annotation", "marker_annotation", "super"):
                    bound = self._type_ref(child, source)
                    return TypeRef(text=text, name=bound.name, arguments=bound.arguments,
                                   is_array=bound.is_array, is_primitive=bound.is_primitive)
            return TypeRef(text=text, name="?")

        return TypeRef(text=text, name=re.sub(r"<.*", "", text))

    def _extract_modifiers(self, node: tree_sitter.Node, source: bytes) -> Tuple[List[str], List[Annotation]]:
        modifiers: List[str] = []
        annotations: List[Annotation] = []
        for child in node.children:
            if child.type != "modifiers":
                continue
            for mod in child.children:
                if mod.type in ("marker_annotation", "annotation"):
                    annotation = self._extract_annotation(mod, source)
                    if annotation:
                        annotations.append(annotation)
                else:
                    modifiers.append(_text(mod, source))
        return modifiers, annotations

    def _extract_annotation(self, node: tree_sitter.Node, source: bytes) -> Optional[Annotation]:
        name = self._get_child_text(node, "name", source)
        if not name:
            return None
        annotation = Annotation(name=_WHITESPACE.sub("", name))

        args = node.child_by_field_name("arguments")
        if args is None:
            return annotation

        for child in args.named_children:
            if child.type == "element_value_pair":
                key = self._get_child_text(child, "key", source) or "value"
                value = child.child_by_field_name("value")
            else:
                key = "value"
                value = child
            if value is None:
                continue
            annotation.arguments[key] = _text(value, source)
            annotation.values[key] = self._string_literals(value, source)

        return annotation

    @staticmethod
    def _string_literals(node: tree_sitter.Node, source: bytes) -> List[str]:
        """Raw texts of the string literals in an annotation value, in source order."""
        literals: List[str] = []
        stack = [node]
        while stack:
            current = stack.pop()
            if current.type in _STRING_NODES:
                literals.append(_text(current, source))
                continue
            stack.extend(reversed(current.children))
        return literals

    def _extract_inheritance(self, node: tree_sitter.Node, source: bytes) -> Tuple[List[TypeRef], List[TypeRef]]:
        """Extract extends and implements clauses.

        Interfaces report their `extends` list as extends; classes report
        the superclass as a single-element extends list.
        """
        extends: List[TypeRef] = []
        implements: List[TypeRef] = []

        for child in node.children:
            if child.type == "superclass":
                for sub in child.named_children:
                    extends.append(self._type_ref(sub, source))
                    break

            elif child.type in ("super_interfaces", "extends_interfaces"):
                target = implements if child.type == "super_interfaces" else extends
                for sub in child.named_children:
                    if sub.type == "type_list":
                        target.extend(self._type_ref(t, source) for t in sub.named_children)

        return extends, implements

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _get_child_text(node: tree_sitter.Node, field_name: str, source: bytes) -> Optional[str]:
        child = node.child_by_field_name(field_name)
        if child:
            return _text(child, source)
        return None

    @staticmethod
    def _extract_package(root: tree_sitter.Node, source: bytes) -> str:
        """Extract package name from the compilation unit."""
        for child in root.children:
            if child.type == "package_declaration":
                text = _text(child, source).strip()
                pkg = text.replace("package ", "").rstrip(";").strip()
                return _WHITESPACE.sub("", pkg)
        return ""

    @staticmethod
    def _extract_imports(root: tree_sitter.Node, source: bytes) -> List[str]:
        """Extract non-static type imports as dotted names ("a.b.C", "a.b.*")."""
        imports = []
        for child in root.children:
            if child.type != "import_declaration":
                continue
            text = _WHITESPACE.sub(" ", _text(child, source)).strip().rstrip(";").strip()
            parts = text.split(" ")
            if len(parts) < 2 or parts[1] == "static":
                continue
            imports.append("".join(parts[1:]))
        return imports


def _text(node: tree_sitter.Node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
