"""Pydantic models for dialogue graphs and compiled compositions."""

from dialogueforge.models.composition import (
    COMPOSITION_SCHEMA_V1,
    AnimationHint,
    BackgroundBinding,
    CharacterBinding,
    Composition,
    CompositionDiagnostic,
    CompositionGraph,
    CompositionGraphNode,
    CompositionScene,
    CompositionSetVariable,
    CompositionTrack,
    Cue,
    CueTiming,
    CueType,
    TrackType,
    Transition,
)
from dialogueforge.models.graph import (
    BaseNode,
    CharacterNode,
    Choice,
    Condition,
    ConditionalBlock,
    ConditionalBlockType,
    ConditionalNode,
    ConditionOperator,
    Edge,
    EdgeKind,
    EndNode,
    FlagValue,
    Graph,
    GraphKind,
    Node,
    NodePresentation,
    NodeType,
    PlayerNode,
    StoryletCall,
    StoryletCallMode,
    StoryletNode,
    StructuralNode,
    derive_edges,
    node_references,
)

__all__ = [
    "COMPOSITION_SCHEMA_V1",
    "AnimationHint",
    "BackgroundBinding",
    "BaseNode",
    "CharacterBinding",
    "CharacterNode",
    "Choice",
    "Composition",
    "CompositionDiagnostic",
    "CompositionGraph",
    "CompositionGraphNode",
    "CompositionScene",
    "CompositionSetVariable",
    "CompositionTrack",
    "Condition",
    "ConditionOperator",
    "ConditionalBlock",
    "ConditionalBlockType",
    "ConditionalNode",
    "Cue",
    "CueTiming",
    "CueType",
    "Edge",
    "EdgeKind",
    "EndNode",
    "FlagValue",
    "Graph",
    "GraphKind",
    "Node",
    "NodePresentation",
    "NodeType",
    "PlayerNode",
    "StoryletCall",
    "StoryletCallMode",
    "StoryletNode",
    "StructuralNode",
    "TrackType",
    "Transition",
    "derive_edges",
    "node_references",
]
