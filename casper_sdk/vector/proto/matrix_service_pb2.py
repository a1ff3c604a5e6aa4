# -*- coding: utf-8 -*-
# Generated by the protocol buffer compiler.  DO NOT EDIT!
# source: matrix_service.proto
"""Generated protocol buffer code."""
from google.protobuf.internal import builder as _builder
from google.protobuf import descriptor as _descriptor
from google.protobuf import descriptor_pool as _descriptor_pool
from google.protobuf import symbol_database as _symbol_database
# @@protoc_insertion_point(imports)

_sym_db = _symbol_database.Default()




DESCRIPTOR = _descriptor_pool.Default().AddSerializedFile(b'\n\x14matrix_service.proto\x12\x0ematrix_service\"d\n\x0cMatrixHeader\x12\x0c\n\x04name\x18\x01 \x01(\t\x12\x11\n\tdimension\x18\x02 \x01(\r\x12\x14\n\x0ctotal_chunks\x18\x03 \x01(\r\x12\x1d\n\x15max_vectors_per_chunk\x18\x04 \x01(\r\"1\n\nMatrixData\x12\x13\n\x0b\x63hunk_index\x18\x01 \x01(\r\x12\x0e\n\x06vector\x18\x02 \x03(\x02\"|\n\x13UploadMatrixRequest\x12.\n\x06header\x18\x01 \x01(\x0b\x32\x1c.matrix_service.MatrixHeaderH\x00\x12*\n\x04\x64\x61ta\x18\x02 \x01(\x0b\x32\x1a.matrix_service.MatrixDataH\x00\x42\t\n\x07payload\"T\n\x14UploadMatrixResponse\x12\x15\n\rtotal_vectors\x18\x01 \x01(\r\x12\x14\n\x0ctotal_chunks\x18\x02 \x01(\r\x12\x0f\n\x07message\x18\x03 \x01(\t2l\n\rMatrixService\x12[\n\x0cUploadMatrix\x12#.matrix_service.UploadMatrixRequest\x1a$.matrix_service.UploadMatrixResponse(\x01\x62\x06proto3')

_builder.BuildMessageAndEnumDescriptors(DESCRIPTOR, globals())
_builder.BuildTopDescriptorsAndMessages(DESCRIPTOR, 'matrix_service_pb2', globals())
if _descriptor._USE_C_DESCRIPTORS == False:

  DESCRIPTOR._options = None
  _MATRIXHEADER._serialized_start=40
  _MATRIXHEADER._serialized_end=140
  _MATRIXDATA._serialized_start=142
  _MATRIXDATA._serialized_end=191
  _UPLOADMATRIXREQUEST._serialized_start=193
  _UPLOADMATRIXREQUEST._serialized_end=317
  _UPLOADMATRIXRESPONSE._serialized_start=319
  _UPLOADMATRIXRESPONSE._serialized_end=403
  _MATRIXSERVICE._serialized_start=405
  _MATRIXSERVICE._serialized_end=513
# @@protoc_insertion_point(module_scope)
