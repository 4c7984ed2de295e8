"""上游 Gemini 服务：能力协议、REST 适配器、模型能力表与重试策略。"""
