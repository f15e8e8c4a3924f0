# Overview: Service layer; every mutating operation commits through concurrency.run_in_transaction.
