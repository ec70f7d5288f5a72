"""核心层：配置、异常、数据模型、外部依赖流水线"""
