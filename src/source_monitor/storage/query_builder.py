# src/source_monitor/storage/query_builder.py
from typing import List, Dict, Any, Tuple, Optional

class SQLQueryBuilder:
    """
    A small SQL query builder for the parameterized statements the repository
    composes dynamically. Column and table names must come from code, never
    from user input; only values are bound.
    """

    @staticmethod
    def build_insert_on_conflict_do_nothing(table_name: str, data: Dict[str, Any],
                                            conflict_target_column: Optional[str] = None) -> Tuple[str, List[Any]]:
        """Builds INSERT INTO ... ON CONFLICT [(column)] DO NOTHING."""
        columns = list(data.keys())
        placeholders = ', '.join(['?'] * len(columns))
        column_names = ', '.join(columns)
        target = f"({conflict_target_column}) " if conflict_target_column else ""
        query = f"INSERT INTO {table_name} ({column_names}) VALUES ({placeholders}) ON CONFLICT {target}DO NOTHING"
        return query, [data[col] for col in columns]

    @staticmethod
    def build_insert_query(table_name: str, data: Dict[str, Any]) -> Tuple[str, List[Any]]:
        columns = list(data.keys())
        placeholders = ', '.join(['?'] * len(columns))
        query = f"INSERT INTO {table_name} ({', '.join(columns)}) VALUES ({placeholders})"
        return query, [data[col] for col in columns]

    @staticmethod
    def build_update_query(table_name: str, data: Dict[str, Any],
                           conditions: Dict[str, Any]) -> Tuple[str, List[Any]]:
        """Builds UPDATE ... SET col = ? ... WHERE key = ? AND ..."""
        set_clauses = ', '.join(f"{col} = ?" for col in data)
        where_clauses = ' AND '.join(f"{col} = ?" for col in conditions)
        query = f"UPDATE {table_name} SET {set_clauses} WHERE {where_clauses}"
        return query, list(data.values()) + list(conditions.values())

    @staticmethod
    def build_select_query(table_name: str, conditions: Optional[Dict[str, Any]] = None,
                           order_by: Optional[str] = None, limit: Optional[int] = None) -> Tuple[str, List[Any]]:
        """Builds SELECT * with equality conditions joined by AND."""
        query = f"SELECT * FROM {table_name}"
        values: List[Any] = []
        if conditions:
            query += " WHERE " + " AND ".join(f"{col} = ?" for col in conditions)
            values.extend(conditions.values())
        if order_by:
            query += f" ORDER BY {order_by}"
        if limit is not None:
            query += " LIMIT ?"
            values.append(limit)
        return query, values
