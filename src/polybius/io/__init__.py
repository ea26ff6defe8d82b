from .json_loader import dump_result_file, load_record_file

__all__ = ["dump_result_file", "load_record_file"]
