"""
Training Engines

- dataset_build_engine : CSV queue logs -> Dataset
- model_train_engine   : LearningEngine capability (forward pass / train step)
- model/               : concrete LearningEngine implementations
- model_report_engine  : error metrics of a model over a Dataset
- registry             : engine name -> factory

Engines hold no session state and do no orchestration; the pipeline and
the stat reporter decide when they run.
"""
