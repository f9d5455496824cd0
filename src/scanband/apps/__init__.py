"""scanband 命令行入口（只承担参数解析与 I/O，业务逻辑在 scanband 包内）。"""
