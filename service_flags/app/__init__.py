"""
Runtime core of the feature-flag client.

The core keeps targeting decisions, datafile freshness and telemetry
batching independent of any transport or public API surface:
- Condition evaluation: three-valued logic over audience rule trees
- Datafile caching: read-through cache with singleflight refresh
- Event batching: size/time/compatibility triggered delivery

Structure:
- app.conditions: Condition tree model, tree evaluator, attribute matching.
- app.caching: Read-through cache, polling and derived specializations.
- app.adapters: HTTP fetch collaborator for the polling cache.
- app.events: Batch queues and the queue factory.
"""
