"""xlsx to SQL - Infer MySQL schemas from Excel workbooks and generate load scripts."""

from .encoder import ValueEncoder
from .inference import ColumnProfile, ColumnType, TypeInferer
from .pipeline import ConversionPipeline, ConversionResult, ConversionStatus
from .runner import ScriptRunner
from .schema import SchemaBuilder
from .writer import BatchInsertWriter

__all__ = [
    "BatchInsertWriter",
    "ColumnProfile",
    "ColumnType",
    "ConversionPipeline",
    "ConversionResult",
    "ConversionStatus",
    "SchemaBuilder",
    "ScriptRunner",
    "TypeInferer",
    "ValueEncoder",
]
