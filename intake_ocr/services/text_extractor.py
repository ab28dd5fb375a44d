"""
Convierte el árbol analyzeResult de Document Intelligence en texto plano.

El orden de salida es fijo: texto (content o párrafos), tablas,
marcas de selección y campos de documentos. Ninguna sección es obligatoria.
"""
from typing import Any, Dict, List, Optional, Tuple

SELECTION_MARK = "selectionMark"
SELECTION_MARK_LISTS = {"selectionMarks"}
FIELD_CONTAINERS = {"fields"}
MARK_CONTENT_TOKENS = {":selected:", ":unselected:"}
CELL_SELECTION_SUFFIX = {"selected": " [✓]", "unselected": " [☐]"}


def _analyze_result(result: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(result, dict):
        return {}
    inner = result.get("analyzeResult")
    if isinstance(inner, dict):
        return inner
    return result


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def build_table_grid(table: Dict[str, Any]) -> List[List[str]]:
    """
    Arma una grilla densa fila x columna a partir de las celdas de una tabla.

    Las posiciones sin celda quedan como cadena vacía. Las celdas sin
    índices válidos se ignoran. Una celda con selectionState lleva la
    marca [✓] o [☐] después de su contenido.
    """
    cells = [
        cell for cell in (table.get("cells") or [])
        if isinstance(cell, dict) and _is_index(cell.get("rowIndex")) and _is_index(cell.get("columnIndex"))
    ]
    if not cells:
        return []

    row_count = max(cell["rowIndex"] for cell in cells) + 1
    column_count = max(cell["columnIndex"] for cell in cells) + 1
    grid = [["" for _ in range(column_count)] for _ in range(row_count)]

    for cell in cells:
        content = str(cell.get("content") or "")
        content += CELL_SELECTION_SUFFIX.get(cell.get("selectionState"), "")
        grid[cell["rowIndex"]][cell["columnIndex"]] = content

    return grid


def render_table(table: Dict[str, Any]) -> str:
    return "".join(" | ".join(row) + "\n" for row in build_table_grid(table))


def _selection_state(node: Dict[str, Any]) -> str:
    value = node.get("value")
    state = node.get("state") or node.get("valueSelectionMark")
    if not state and isinstance(value, dict):
        state = value.get("state")
    if not state and isinstance(value, str):
        state = value
    return "selected" if state == "selected" else "unselected"


def _is_selection_mark(node: Dict[str, Any], in_mark_list: bool) -> bool:
    if in_mark_list:
        return True
    return SELECTION_MARK in (node.get("kind"), node.get("type"), node.get("valueType"))


def _mark_label(node: Dict[str, Any], key: Optional[str], parent_key: Optional[str], path: str) -> str:
    # Los campos de documentos se identifican por su nombre, no por el content ":selected:"
    if parent_key in FIELD_CONTAINERS and key:
        return key
    for name in (node.get("content"), node.get("valueString"), node.get("name")):
        if name and name not in MARK_CONTENT_TOKENS:
            return str(name)
    return path or key or "Unnamed"


def find_selection_marks(tree: Any) -> List[Tuple[str, str]]:
    """
    Recorre el árbol buscando marcas de selección (checkbox / radio).

    Recorrido en profundidad con pila explícita, en el orden del documento.
    Un nodo ya visitado no se vuelve a procesar. Las marcas sin nombre
    propio se etiquetan con su ruta completa (ej: pages[1].selectionMarks[0]).

    Returns:
        Lista de tuplas (etiqueta, 'selected' | 'unselected')
    """
    marks = []
    visited = set()
    # (nodo, ruta, clave, clave del contenedor, dentro de una lista de marcas)
    stack: List[Tuple[Any, str, Optional[str], Optional[str], bool]] = [(tree, "", None, None, False)]

    while stack:
        node, path, key, parent_key, in_mark_list = stack.pop()

        if not isinstance(node, (dict, list)) or id(node) in visited:
            continue
        visited.add(id(node))

        if isinstance(node, list):
            children = [
                (item, f"{path}[{index}]", None, key, key in SELECTION_MARK_LISTS)
                for index, item in enumerate(node)
            ]
        elif _is_selection_mark(node, in_mark_list):
            marks.append((_mark_label(node, key, parent_key, path), _selection_state(node)))
            continue
        else:
            children = [
                (value, f"{path}.{name}" if path else str(name), str(name), key, False)
                for name, value in node.items()
            ]

        stack.extend(reversed(children))

    return marks


def _document_fields(documents: List[Any]) -> List[Tuple[str, str]]:
    fields = []
    for document in documents:
        if not isinstance(document, dict):
            continue
        for name, field in (document.get("fields") or {}).items():
            if not isinstance(field, dict) or _is_selection_mark(field, False):
                continue
            value = field.get("valueString") or field.get("content")
            if value in MARK_CONTENT_TOKENS:
                value = None
            if not value and isinstance(field.get("value"), str):
                value = field["value"]
            if value:
                fields.append((name, str(value)))
    return fields


def extract_text(result: Optional[Dict[str, Any]]) -> str:
    """
    Aplana un resultado de análisis en un texto para mostrar o enviar al LLM.

    Args:
        result: Árbol analyzeResult (o la respuesta de polling que lo contiene)

    Returns:
        Texto extraído; cadena vacía si no hay nada que extraer
    """
    analyze_result = _analyze_result(result)
    blocks = []

    content = analyze_result.get("content")
    if content:
        blocks.append(content)
    else:
        paragraphs = [
            p.get("content") or "" for p in (analyze_result.get("paragraphs") or []) if isinstance(p, dict)
        ]
        if paragraphs:
            blocks.append("\n\n".join(paragraphs))

    tables = [t for t in (analyze_result.get("tables") or []) if isinstance(t, dict)]
    rendered_tables = [
        f"Table {index}:\n{rendered}"
        for index, rendered in enumerate((render_table(t) for t in tables), start=1)
        if rendered
    ]
    if rendered_tables:
        blocks.append("Tables:\n" + "\n".join(rendered_tables))

    marks = find_selection_marks(analyze_result)
    if marks:
        blocks.append("Selection marks:\n" + "".join(f"{label}: {state}\n" for label, state in marks))

    fields = _document_fields(analyze_result.get("documents") or [])
    if fields:
        blocks.append("Fields:\n" + "".join(f"{name}: {value}\n" for name, value in fields))

    return "\n\n".join(blocks)
